"""
Configuration data models for sitesync.

These models define the structure of .sitesync.json and
~/.config/sitesync/config.json files, with validation via Pydantic.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TemplateConfig(BaseModel):
    """
    Where the upstream template lives and which refs to compare.
    """
    remote_name: str = Field(
        default="template",
        min_length=1,
        description="Name of the git remote pointing at the template repository"
    )
    url: Optional[str] = Field(
        default=None,
        description="Template repository URL, registered if the remote is missing"
    )
    branch: str = Field(
        default="main",
        min_length=1,
        description="Template branch to follow"
    )
    local_ref: str = Field(
        default="HEAD",
        min_length=1,
        description="Site ref the backlog is computed against"
    )

    @property
    def remote_ref(self) -> str:
        """Remote-tracking ref for the template branch, e.g. template/main."""
        return f"{self.remote_name}/{self.branch}"


class GitConfig(BaseModel):
    """
    How the git backend is invoked.
    """
    executable: str = Field(
        default="git",
        min_length=1,
        description="Name or path of the git executable"
    )
    timeout_seconds: Optional[float] = Field(
        default=None,
        ge=1,
        description="Per-command timeout; unset waits indefinitely"
    )


class SyncConfig(BaseModel):
    """
    Safety checks around a sync batch.
    """
    require_clean: bool = Field(
        default=True,
        description="Refuse to start a batch when the working tree has changes"
    )
    auto_abort_on_error: bool = Field(
        default=True,
        description="Abort an in-progress cherry-pick when a batch unwinds on an exception"
    )


class SiteSyncConfig(BaseModel):
    """
    Main sitesync configuration.

    Example:
        >>> config = SiteSyncConfig(template={"url": "https://github.com/acme/template.git"})
        >>> config.template.remote_ref
        'template/main'
    """
    model_config = ConfigDict(extra="ignore")

    template: TemplateConfig = Field(default_factory=TemplateConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
