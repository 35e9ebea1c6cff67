from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import typer

from relbuild.core.config import CONFIG_FILE_NAME, Config, load_config_or_default
from relbuild.core.errors import ErrorCode
from relbuild.core.result import Err
from relbuild.git.repository import Repository
from relbuild.output.console import ConsoleProtocol, RichConsole
from relbuild.output.errors import pipeline_error_exit_code, print_pipeline_error
from relbuild.pipeline.context import PipelineContext, Tools
from relbuild.pipeline.gate import decide_publish, require_store_credentials
from relbuild.release.build_type import BuildType
from relbuild.release.version import resolve_versions
from relbuild.store.base import RemoteStore
from relbuild.tools.compress import LzsaCompressor, ZipCompressor
from relbuild.tools.signing import SigntoolSigner
from relbuild.tools.toolchain import MsbuildToolchain, ProcessSelfTestRunner, locate_msbuild
from relbuild.tools.translations import CommandTranslationChecker

REPO_ENV = "RELBUILD_REPO"


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: Config
    repo: Repository
    console: ConsoleProtocol


def find_repo_root(env: Mapping[str, str] | None = None) -> Path:
    """Repository root: $RELBUILD_REPO, else the nearest parent holding .git."""
    env = os.environ if env is None else env
    override = env.get(REPO_ENV)
    if override:
        return Path(override).expanduser().resolve()

    cwd = Path.cwd().resolve()
    for parent in (cwd, *cwd.parents):
        if (parent / ".git").exists():
            return parent
    return cwd


def build_context() -> CLIContext:
    console = RichConsole()
    root = find_repo_root()

    config_result = load_config_or_default(root / CONFIG_FILE_NAME)
    if isinstance(config_result, Err):
        print_pipeline_error(config_result.error, console)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(
        root=root,
        config=config_result.value,
        repo=Repository(root),
        console=console,
    )


def _open_store(ctx: CLIContext, env: Mapping[str, str]) -> RemoteStore:
    # Imported here so commands that never publish don't load boto3.
    from relbuild.store.s3 import S3Store

    store = S3Store.from_config(ctx.config.store, env)
    if isinstance(store, Err):
        print_pipeline_error(store.error, ctx.console)
        raise typer.Exit(code=pipeline_error_exit_code(store.error))
    return store.value


def build_tools(ctx: CLIContext, env: Mapping[str, str]) -> Tools:
    config = ctx.config
    return Tools(
        toolchain=MsbuildToolchain(
            repo_root=ctx.root,
            msbuild=locate_msbuild(config.build.msbuild),
            console=ctx.console,
        ),
        self_test=ProcessSelfTestRunner(ctx.console),
        signer=SigntoolSigner.from_config(
            config.signing, repo_root=ctx.root, env=env, console=ctx.console
        ),
        zip=ZipCompressor(),
        lzsa=LzsaCompressor(exe=ctx.root / config.build.lzsa_tool, console=ctx.console),
        translations=CommandTranslationChecker(
            repo=ctx.repo,
            command=config.translations.command,
            paths=config.translations.paths,
            console=ctx.console,
        ),
    )


def build_pipeline_context(
    *,
    build_type: BuildType = BuildType.PRE_RELEASE,
    upload: bool = False,
    allow_dirty: bool = False,
    with_versions: bool = True,
    with_store: bool = False,
) -> PipelineContext:
    """Everything a pipeline run needs, or exit.

    Store credentials are checked here when an upload was requested, before
    any build work starts. `with_store` opens the store regardless of the
    publish decision (prune).
    """
    ctx = build_context()
    env = os.environ

    if upload:
        creds = require_store_credentials(ctx.config.store, env)
        if isinstance(creds, Err):
            print_pipeline_error(creds.error, ctx.console)
            raise typer.Exit(code=pipeline_error_exit_code(creds.error))

    versions = None
    if with_versions:
        resolved = resolve_versions(
            ctx.repo,
            version_header=ctx.root / ctx.config.product.version_header,
            counter_base=ctx.config.product.counter_base,
        )
        if isinstance(resolved, Err):
            print_pipeline_error(resolved.error, ctx.console)
            raise typer.Exit(code=pipeline_error_exit_code(resolved.error))
        versions = resolved.value
        ctx.console.print(
            f"version {versions.product_version}, pre-release {versions.counter_str}, "
            f"commit {versions.source_revision_id}"
        )

    decision = decide_publish(upload_requested=upload, ci=ctx.config.ci, env=env)
    store = _open_store(ctx, env) if (decision.allowed or with_store) else None

    return PipelineContext(
        root=ctx.root,
        config=ctx.config,
        repo=ctx.repo,
        console=ctx.console,
        tools=build_tools(ctx, env),
        build_type=build_type,
        versions=versions,
        publish=decision,
        store=store,
        allow_dirty=allow_dirty,
    )
