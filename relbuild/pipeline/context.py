"""Run-scoped state handed to every stage."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from relbuild.core.config import Config
from relbuild.git.repository import Repository
from relbuild.output.console import ConsoleProtocol
from relbuild.pipeline.gate import PublishDecision
from relbuild.release.build_type import BuildType
from relbuild.release.names import BuildVariant, NameCodec
from relbuild.release.version import VersionInfo
from relbuild.store.base import RemoteStore
from relbuild.tools.base import Compressor, SelfTestRunner, Signer, Toolchain, TranslationChecker

__all__ = ["PipelineContext", "Tools", "VARIANTS"]

VARIANTS: tuple[BuildVariant, ...] = (BuildVariant.WIN32, BuildVariant.X64)


@dataclass(frozen=True, slots=True)
class Tools:
    toolchain: Toolchain
    self_test: SelfTestRunner
    signer: Signer
    zip: Compressor
    lzsa: Compressor
    translations: TranslationChecker


@dataclass(frozen=True)
class PipelineContext:
    """Everything one run needs, built once before the first stage.

    Attributes:
        root: Repository root; all relative paths resolve against it.
        versions: Version identifiers of this run. None only for runs that
            produce no artifacts (clean, prune).
        publish: Whether this run may upload, and why not.
        store: Remote store; None when publishing is not allowed.
        allow_dirty: Skip the clean-tree preflight check.
    """

    root: Path
    config: Config
    repo: Repository
    console: ConsoleProtocol
    tools: Tools
    build_type: BuildType = BuildType.PRE_RELEASE
    versions: VersionInfo | None = None
    publish: PublishDecision = field(default_factory=PublishDecision.denied_no_flag)
    store: RemoteStore | None = None
    allow_dirty: bool = False
    today: date = field(default_factory=date.today)

    @property
    def codec(self) -> NameCodec:
        return NameCodec(self.config.product.name, self.build_type.channel)

    @property
    def remote_prefix(self) -> str:
        return self.build_type.prefix(self.config.store.remote_root)

    @property
    def out_dir(self) -> Path:
        return self.root / self.config.build.out_dir

    @property
    def artifacts_dir(self) -> Path:
        return self.root / self.config.build.artifacts_dir

    @property
    def manifest_path(self) -> Path:
        return self.artifacts_dir / "manifest.txt"

    def variant_dir(self, variant: BuildVariant) -> Path:
        return self.out_dir / variant.out_subdir

    def require_versions(self) -> VersionInfo:
        if self.versions is None:
            raise AssertionError("pipeline context was built without version info")
        return self.versions
