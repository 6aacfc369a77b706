import os
from pydantic import BaseModel
from typing import List, Optional

class Settings(BaseModel):
    """for reading environment-driven configuration.

    The GitHub token, owner and repo have no defaults; everything else points
    at public GitHub and the `main` branch.
    """
    github_token: Optional[str] = os.getenv("GITHUB_TOKEN")
    github_owner: Optional[str] = os.getenv("GITHUB_OWNER")
    github_repo: Optional[str] = os.getenv("GITHUB_REPO")
    github_branch: str = os.getenv("GITHUB_BRANCH") or "main"
    github_api_url: str = os.getenv("GITHUB_API_URL", "https://api.github.com")
    github_raw_url: str = os.getenv("GITHUB_RAW_URL", "https://raw.githubusercontent.com")
    index_path: str = os.getenv("INDEX_PATH", "data/pahlawan_uploads.json")
    image_dir: str = os.getenv("IMAGE_DIR", "images")
    index_write_retries: int = int(os.getenv("INDEX_WRITE_RETRIES", "3"))
    request_timeout: float = float(os.getenv("REQUEST_TIMEOUT", "30"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def missing(self) -> List[str]:
        """Names of the required env vars that are unset or empty."""
        required = {
            "GITHUB_TOKEN": self.github_token,
            "GITHUB_OWNER": self.github_owner,
            "GITHUB_REPO": self.github_repo,
        }
        return [name for name, value in required.items() if not value]

settings = Settings()
