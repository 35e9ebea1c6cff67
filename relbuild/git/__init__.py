"""Git operations used by the pipeline.

Usage:
    from relbuild.git import Repository

    repo = Repository(Path("."))
    sha = repo.head_sha()
"""

from relbuild.git.repository import GitError, GitStatus, Repository, StatusEntry

__all__ = [
    "GitError",
    "GitStatus",
    "Repository",
    "StatusEntry",
]
