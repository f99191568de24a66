"""
Mirror of the organization's SSO identity -> GitHub username mapping.

Identities come from the organization's SAML identity provider via the
GraphQL API; the result replaces the stored mapping table as a whole.
"""

import logging
from typing import Dict, Optional

import requests
from pydantic import ValidationError

from hostca.db.storage import Storage
from hostca.models.github import ExternalIdentityPage

logger = logging.getLogger(__name__)

EXTERNAL_IDENTITIES_QUERY = """
query($organization: String!, $cursor: String) {
  organization(login: $organization) {
    samlIdentityProvider {
      externalIdentities(first: 100, after: $cursor) {
        pageInfo { hasNextPage endCursor }
        nodes {
          samlIdentity { nameId }
          user { login }
        }
      }
    }
  }
}
"""


class GitHubSyncError(Exception):
    pass


class GitHubClient:

    def __init__(self, organization: str, token: str,
                 api_url: str = "https://api.github.com/graphql",
                 session: Optional[requests.Session] = None,
                 timeout: float = 30.0):
        self.organization = organization
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"bearer {token}"})

    def _fetch_page(self, cursor: Optional[str]) -> ExternalIdentityPage:
        payload = {
            "query": EXTERNAL_IDENTITIES_QUERY,
            "variables": {"organization": self.organization, "cursor": cursor},
        }
        try:
            response = self.session.post(self.api_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise GitHubSyncError(f"GitHub API request failed: {e}") from e
        except ValueError as e:
            raise GitHubSyncError(f"GitHub API returned invalid JSON: {e}") from e

        if data.get("errors"):
            raise GitHubSyncError(f"GitHub API returned errors: {data['errors']}")

        try:
            provider = data["data"]["organization"]["samlIdentityProvider"]
        except (KeyError, TypeError):
            raise GitHubSyncError(f"Unexpected GitHub API response for organization {self.organization}")
        if provider is None:
            raise GitHubSyncError(f"Organization {self.organization} has no SAML identity provider")

        try:
            return ExternalIdentityPage.model_validate(provider["externalIdentities"])
        except (KeyError, ValidationError) as e:
            raise GitHubSyncError(f"Unexpected GitHub API response: {e}") from e

    def fetch_identity_mapping(self) -> Dict[str, str]:
        mapping = {}
        cursor = None
        while True:
            page = self._fetch_page(cursor)
            for node in page.nodes:
                if node.user is None or node.saml_identity is None or not node.saml_identity.name_id:
                    continue
                mapping[node.saml_identity.name_id] = node.user.login
            if not page.page_info.has_next_page:
                break
            cursor = page.page_info.end_cursor
        return mapping


def sync_identity_mappings(storage: Storage, client: GitHubClient) -> int:
    """Replace stored mappings with the directory's. Storage is untouched if the fetch fails."""
    mapping = client.fetch_identity_mapping()
    storage.record_identity_mapping(mapping)
    logger.info(f"Synchronized {len(mapping)} GitHub identity mappings for {client.organization}")
    return len(mapping)
