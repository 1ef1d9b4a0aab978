"""
Application settings loaded from environment variables.
"""

from typing import List, Optional

from pydantic_settings import BaseSettings

from utils.schemas import OrgFilter


class Settings(BaseSettings):
    # ── GitHub connector ────────────────────────────────────────────────
    github_client_id: str = ""
    github_client_secret: str = ""
    github_redirect_uri: str = "http://localhost:8000/api/v1/connectors/github/callback"
    github_host_name: str = ""               # GitHub Enterprise host, e.g. ghe.example.com
    github_root_ca: str = ""                 # PEM path (or inline PEM) for the enterprise host
    github_org: str = ""                     # legacy single-org filter
    github_orgs: List[OrgFilter] = []        # JSON: [{"name": "acme", "teams": ["admins"]}]
    github_load_all_groups: bool = False
    github_team_name_field: str = ""         # name | slug | both
    github_use_login_as_id: bool = False
    github_preferred_email_domain: Optional[str] = None
    github_noreply_private_email: bool = False

    # ── Upstream HTTP ────────────────────────────────────────────────────
    http_timeout_seconds: float = 30.0

    # ── Server ───────────────────────────────────────────────────────────
    port: int = 8000
    host: str = "0.0.0.0"
    debug: bool = False

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
    }

    def github_connector_config(self):
        """Return the GitHub connector settings as a ``GitHubConfig``."""
        from connectors.github_config import GitHubConfig

        return GitHubConfig(
            client_id=self.github_client_id,
            client_secret=self.github_client_secret,
            redirect_uri=self.github_redirect_uri,
            host_name=self.github_host_name,
            root_ca=self.github_root_ca,
            org=self.github_org,
            orgs=tuple(self.github_orgs),
            load_all_groups=self.github_load_all_groups,
            team_name_field=self.github_team_name_field,
            use_login_as_id=self.github_use_login_as_id,
            preferred_email_domain=self.github_preferred_email_domain or "",
            noreply_private_email=self.github_noreply_private_email,
        )


config = Settings()
