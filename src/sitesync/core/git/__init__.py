"""
Git command gateway.

Example:
    >>> from sitesync.core.git import GitGateway, quote_arg
    >>> gateway = GitGateway(project_dir=Path("."))
    >>> gateway.run("remote")
    'origin'
"""

from sitesync.core.git.gateway import GitError, GitGateway, escape_shell_arg, quote_arg

__all__ = [
    "GitError",
    "GitGateway",
    "escape_shell_arg",
    "quote_arg",
]
