import requests
from ..core.config import Settings
from .contents import ContentsClient

API_VERSION = "2022-11-28"

def github_session(cfg: Settings) -> requests.Session:
    """Create a requests session carrying our GitHub auth and API-version headers."""
    session = requests.Session()
    session.headers.update(
        {
            "Authorization": f"Bearer {cfg.github_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }
    )
    return session

def contents_client(cfg: Settings):
    """Return a ContentsClient bound to the configured repo and branch."""
    return ContentsClient(
        github_session(cfg),
        owner=cfg.github_owner or "",
        repo=cfg.github_repo or "",
        branch=cfg.github_branch,
        api_url=cfg.github_api_url,
        timeout=cfg.request_timeout,
    )
