"""Who may publish.

Only a push to the canonical repository's release branch uploads, and only
when the upload flag was given. Anything else (forks, pull requests, feature
branches, local runs) builds but skips the publish stage.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from relbuild.core.config import CiConfig, StoreConfig
from relbuild.core.errors import ConfigError
from relbuild.core.result import Err, Ok, Result

__all__ = ["PublishDecision", "decide_publish", "require_store_credentials"]


@dataclass(frozen=True, slots=True)
class PublishDecision:
    allowed: bool
    reason: str

    @classmethod
    def denied_no_flag(cls) -> PublishDecision:
        return cls(allowed=False, reason="upload flag not given")


def decide_publish(
    *,
    upload_requested: bool,
    ci: CiConfig,
    env: Mapping[str, str],
) -> PublishDecision:
    if not upload_requested:
        return PublishDecision.denied_no_flag()

    ref = env.get("GITHUB_REF", "")
    if ref != f"refs/heads/{ci.release_branch}":
        return PublishDecision(
            allowed=False,
            reason=f"not on {ci.release_branch} branch (GITHUB_REF='{ref}')",
        )

    repo = env.get("GITHUB_REPOSITORY", "")
    event = env.get("GITHUB_EVENT_NAME", "")
    if repo != ci.canonical_repo or event != "push":
        return PublishDecision(
            allowed=False,
            reason=f"not a push to {ci.canonical_repo} (repo='{repo}', event='{event}')",
        )

    return PublishDecision(allowed=True, reason="push to release branch")


def require_store_credentials(
    config: StoreConfig, env: Mapping[str, str]
) -> Result[None, ConfigError]:
    """Fail fast, before any build work, when upload credentials are missing."""
    missing = [name for name in (config.access_env, config.secret_env) if not env.get(name)]
    if missing:
        return Err(
            ConfigError(
                "credentials",
                f"missing store credentials: {', '.join(missing)}",
                hint="set them in the environment or drop --upload",
            )
        )
    return Ok(None)
