import logging

from hostca.db.storage import Storage
from hostca.exceptions import StorageError
from hostca.services.github import GitHubClient, GitHubSyncError, sync_identity_mappings

logger = logging.getLogger(__name__)


def build_github_client() -> GitHubClient:
    from hostca import config

    if not config.GITHUB_ORGANIZATION or not config.GITHUB_TOKEN:
        raise ValueError("GITHUB_ORGANIZATION and GITHUB_TOKEN must be set for GitHub sync")
    return GitHubClient(
        organization=config.GITHUB_ORGANIZATION,
        token=config.GITHUB_TOKEN,
        api_url=config.GITHUB_API_URL,
    )


def sync_github_mappings(storage: Storage, client: GitHubClient):
    try:
        sync_identity_mappings(storage, client)
    except GitHubSyncError as e:
        logger.error(f"GitHub sync skipped, directory unavailable: {e}")
    except StorageError as e:
        logger.error(f"GitHub sync failed to store mappings: {e.detail}", exc_info=True)
