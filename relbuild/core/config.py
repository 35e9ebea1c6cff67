"""Typed configuration loading and access.

The pipeline reads an optional `relbuild.toml` at the repository root. Every
field has a default matching the stock SumatraPDF layout, so a missing file is
not an error (see load_config_or_default).

Example:
    [product]
    name = "SumatraPDF"
    counter_base = 1000

    [store]
    bucket = "kjkpub"
    retain = 10

    [ci]
    release_branch = "master"
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError
from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_int, get_str, get_str_list, get_table

__all__ = [
    "CONFIG_FILE_NAME",
    "BuildConfig",
    "CiConfig",
    "Config",
    "ProductConfig",
    "SigningConfig",
    "SourceConfig",
    "StoreConfig",
    "TranslationsConfig",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILE_NAME = "relbuild.toml"

DEFAULT_TARGETS = ("SumatraPDF", "SumatraPDF-dll", "PdfFilter", "PdfPreview", "test_util")
DEFAULT_SMOKE_TARGETS = ("SumatraPDF-dll", "test_util")


@dataclass(frozen=True, slots=True)
class ProductConfig:
    """Product identity and versioned source files (paths relative to repo root)."""

    name: str = "SumatraPDF"
    version_header: str = "src/Version.h"
    build_config_header: str = "src/utils/BuildConfig.h"
    # Commits that predate git history; added to the linear commit count.
    counter_base: int = 1000


@dataclass(frozen=True, slots=True)
class BuildConfig:
    solution: str = "vs2019/SumatraPDF.sln"
    configuration: str = "Release"
    targets: tuple[str, ...] = DEFAULT_TARGETS
    smoke_targets: tuple[str, ...] = DEFAULT_SMOKE_TARGETS
    msbuild: str | None = None
    out_dir: str = "out"
    artifacts_dir: str = "artifacts"
    lzsa_tool: str = "bin/MakeLZSA.exe"


@dataclass(frozen=True, slots=True)
class StoreConfig:
    """Remote object store location and retention."""

    bucket: str = "kjkpub"
    remote_root: str = "sumatrapdf"
    retain: int = 10
    region: str | None = None
    endpoint_url: str | None = None
    access_env: str = "AWS_ACCESS"
    secret_env: str = "AWS_SECRET"


@dataclass(frozen=True, slots=True)
class SigningConfig:
    signtool: str | None = None
    cert_path: str = "cert.pfx"
    password_env: str = "CERT_PWD"
    timestamp_url: str = "http://timestamp.digicert.com"


@dataclass(frozen=True, slots=True)
class CiConfig:
    """Publish-safety context: only pushes to this repo and branch publish."""

    release_branch: str = "master"
    canonical_repo: str = "sumatrapdfreader/sumatrapdf"


@dataclass(frozen=True, slots=True)
class TranslationsConfig:
    """Translation regeneration command and the paths it must leave unchanged.

    An empty command disables the check.
    """

    command: tuple[str, ...] = ()
    paths: tuple[str, ...] = ("translations", "src/Translations.cpp")


@dataclass(frozen=True, slots=True)
class SourceConfig:
    """Source tree used by the format and wc commands."""

    dirs: tuple[str, ...] = ("src",)
    extensions: tuple[str, ...] = (".cpp", ".h", ".c")
    exclude: tuple[str, ...] = ("ext",)


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    product: ProductConfig = field(default_factory=ProductConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    signing: SigningConfig = field(default_factory=SigningConfig)
    ci: CiConfig = field(default_factory=CiConfig)
    translations: TranslationsConfig = field(default_factory=TranslationsConfig)
    source: SourceConfig = field(default_factory=SourceConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: If a value is present but out of range.
        """
        product: StrDict = get_table(data, "product") or {}
        build: StrDict = get_table(data, "build") or {}
        store: StrDict = get_table(data, "store") or {}
        signing: StrDict = get_table(data, "signing") or {}
        ci: StrDict = get_table(data, "ci") or {}
        translations: StrDict = get_table(data, "translations") or {}
        source: StrDict = get_table(data, "source") or {}

        d_product = ProductConfig()
        d_build = BuildConfig()
        d_store = StoreConfig()
        d_signing = SigningConfig()
        d_ci = CiConfig()
        d_translations = TranslationsConfig()
        d_source = SourceConfig()

        counter_base = get_int(product, "counter_base")
        if counter_base is not None and counter_base < 0:
            raise ValueError(f"product.counter_base must be >= 0, got {counter_base}")
        retain = get_int(store, "retain")
        if retain is not None and retain < 1:
            raise ValueError(f"store.retain must be >= 1, got {retain}")

        return cls(
            product=ProductConfig(
                name=get_str(product, "name") or d_product.name,
                version_header=get_str(product, "version_header") or d_product.version_header,
                build_config_header=get_str(product, "build_config_header")
                or d_product.build_config_header,
                counter_base=d_product.counter_base if counter_base is None else counter_base,
            ),
            build=BuildConfig(
                solution=get_str(build, "solution") or d_build.solution,
                configuration=get_str(build, "configuration") or d_build.configuration,
                targets=get_str_list(build, "targets") or d_build.targets,
                smoke_targets=get_str_list(build, "smoke_targets") or d_build.smoke_targets,
                msbuild=get_str(build, "msbuild"),
                out_dir=get_str(build, "out_dir") or d_build.out_dir,
                artifacts_dir=get_str(build, "artifacts_dir") or d_build.artifacts_dir,
                lzsa_tool=get_str(build, "lzsa_tool") or d_build.lzsa_tool,
            ),
            store=StoreConfig(
                bucket=get_str(store, "bucket") or d_store.bucket,
                remote_root=(get_str(store, "remote_root") or d_store.remote_root).strip("/"),
                retain=d_store.retain if retain is None else retain,
                region=get_str(store, "region"),
                endpoint_url=get_str(store, "endpoint_url"),
                access_env=get_str(store, "access_env") or d_store.access_env,
                secret_env=get_str(store, "secret_env") or d_store.secret_env,
            ),
            signing=SigningConfig(
                signtool=get_str(signing, "signtool"),
                cert_path=get_str(signing, "cert_path") or d_signing.cert_path,
                password_env=get_str(signing, "password_env") or d_signing.password_env,
                timestamp_url=get_str(signing, "timestamp_url") or d_signing.timestamp_url,
            ),
            ci=CiConfig(
                release_branch=get_str(ci, "release_branch") or d_ci.release_branch,
                canonical_repo=get_str(ci, "canonical_repo") or d_ci.canonical_repo,
            ),
            translations=TranslationsConfig(
                command=get_str_list(translations, "command") or d_translations.command,
                paths=get_str_list(translations, "paths") or d_translations.paths,
            ),
            source=SourceConfig(
                dirs=get_str_list(source, "dirs") or d_source.dirs,
                extensions=get_str_list(source, "extensions") or d_source.extensions,
                exclude=get_str_list(source, "exclude") or d_source.exclude,
            ),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("config", f"Config root must be a TOML table: {path}"))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError("config", f"Config file not found: {path}"))
    except PermissionError:
        return Err(ConfigError("config", f"Permission denied reading: {path}"))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError("config", f"Invalid TOML syntax in {path}: {e}"))
    except UnicodeDecodeError as e:
        return Err(ConfigError("config", f"Error reading {path}: {e}"))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError("config", f"Invalid config structure in {path}: {e}"))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Load config if the file exists, otherwise return the defaults.

    A file that exists but is invalid is still an error.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)
