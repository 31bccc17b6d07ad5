"""Configuration from environment variables (.env)."""

import os
from pathlib import Path
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass
class Config:
    project_root: Path
    logs_dir: Path
    endpoint: str
    site: str
    max_results: int  # Ranked results per page
    num_retrieval_results: int  # Candidates retrieved before ranking
    timeout_seconds: float
    user_id: str

    @classmethod
    def load(cls) -> "Config":
        project_root = Path(__file__).parent.parent.parent
        logs_dir = os.getenv("NLWEB_LOGS_DIR", "").strip()
        return cls(
            project_root=project_root,
            logs_dir=Path(logs_dir) if logs_dir else project_root / "logs",
            endpoint=os.getenv("NLWEB_ENDPOINT", "").strip(),
            site=os.getenv("NLWEB_SITE", "").strip(),
            max_results=int(os.getenv("NLWEB_MAX_RESULTS", "9")),
            num_retrieval_results=int(os.getenv("NLWEB_NUM_RETRIEVAL_RESULTS", "50")),
            timeout_seconds=float(os.getenv("NLWEB_TIMEOUT_SECONDS", "60")),
            user_id=os.getenv("NLWEB_USER_ID", "").strip(),
        )

    def validate(self) -> list[str]:
        errors = []
        if not self.endpoint:
            errors.append("NLWEB_ENDPOINT is not set")
        elif not self.endpoint.startswith(("http://", "https://")):
            errors.append(f"NLWEB_ENDPOINT must be an http(s) URL: {self.endpoint}")
        if not self.site:
            errors.append("NLWEB_SITE is not set")
        if self.max_results < 1:
            errors.append(f"NLWEB_MAX_RESULTS must be positive: {self.max_results}")
        if self.num_retrieval_results < self.max_results:
            errors.append(
                "NLWEB_NUM_RETRIEVAL_RESULTS must be at least NLWEB_MAX_RESULTS"
            )
        return errors


config = Config.load()
