import json

from decouple import config
from dotenv import load_dotenv

load_dotenv()


SQLALCHEMY_DATABASE_URL = config("SQLALCHEMY_DATABASE_URL", default="sqlite:///hostca.sqlite3")
SQLALCHEMY_POOL_SIZE = config("SQLALCHEMY_POOL_SIZE", cast=int, default=10)
SQLALCHEMY_MAX_OVERFLOW = config("SQLALCHEMY_MAX_OVERFLOW", cast=int, default=30)

# TLS towards the database server (MySQL only)
DATABASE_TLS_CA = config("DATABASE_TLS_CA", default="")
DATABASE_TLS_CERT = config("DATABASE_TLS_CERT", default="")
DATABASE_TLS_KEY = config("DATABASE_TLS_KEY", default="")

SIGNING_KEY = config("SIGNING_KEY", default="")
SIGNING_KEY_PASSPHRASE = config("SIGNING_KEY_PASSPHRASE", default="")

CERT_DURATION = config("CERT_DURATION", default="168h")
STRIP_SUFFIX = config("STRIP_SUFFIX", default="")
HOST_ALIASES = config("HOST_ALIASES", cast=json.loads, default="{}")
HOST_ALIASES_FILE = config("HOST_ALIASES_FILE", default="")

TRUST_PROXY_HEADERS = config("TRUST_PROXY_HEADERS", cast=bool, default=False)
CLIENT_CERT_HEADER = config("CLIENT_CERT_HEADER", default="X-SSL-Client-Cert")
CLIENT_VERIFY_HEADER = config("CLIENT_VERIFY_HEADER", default="X-SSL-Client-Verify")
MAX_PUBLIC_KEY_BYTES = config("MAX_PUBLIC_KEY_BYTES", cast=int, default=16384)

GITHUB_SYNC_ENABLED = config("GITHUB_SYNC_ENABLED", cast=bool, default=False)
GITHUB_ORGANIZATION = config("GITHUB_ORGANIZATION", default="")
GITHUB_TOKEN = config("GITHUB_TOKEN", default="")
GITHUB_API_URL = config("GITHUB_API_URL", default="https://api.github.com/graphql")
GITHUB_SYNC_INTERVAL = config("GITHUB_SYNC_INTERVAL", cast=int, default=600)

UVICORN_HOST = config("UVICORN_HOST", default="127.0.0.1")
UVICORN_PORT = config("UVICORN_PORT", cast=int, default=8080)
UVICORN_UDS = config("UVICORN_UDS", default=None)

DEBUG = config("DEBUG", cast=bool, default=False)


def load_host_aliases() -> dict:
    """HOST_ALIASES merged with the contents of HOST_ALIASES_FILE, if set."""
    aliases = dict(HOST_ALIASES)
    if HOST_ALIASES_FILE:
        with open(HOST_ALIASES_FILE, "r") as f:
            aliases.update(json.load(f))
    return aliases
