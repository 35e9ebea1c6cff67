"""Files describing the latest published build.

The website and the app's update check read these after every publish:

- <root>/sumatralatest.js (or sumadaily.js): download links for the website
- <root>/sumpdf-<channel>-latest.txt: the bare version
- <root>/sumpdf-<channel>-update.txt: update-check payload. Never carries a
  stable version for pre-release builds.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from relbuild.release.build_type import BuildType
from relbuild.release.names import ArtifactKind, BuildVariant, NameCodec

__all__ = ["UpdateFile", "update_files"]


@dataclass(frozen=True, slots=True)
class UpdateFile:
    key: str
    content: str


def _latest_js(*, codec: NameCodec, base_url: str, version: str, built_on: date) -> str:
    def url(kind: ArtifactKind, variant: BuildVariant) -> str:
        return base_url + codec.encode(kind, version, variant)

    win32, x64 = BuildVariant.WIN32, BuildVariant.X64
    lines = [
        f"var sumLatestVer = {version};",
        f'var sumBuiltOn = "{built_on.isoformat()}";',
        f'var sumLatestName = "{codec.encode(ArtifactKind.MAIN_EXE, version, win32)}";',
        "",
        f'var sumLatestExe = "{url(ArtifactKind.MAIN_EXE, win32)}";',
        f'var sumLatestPdb = "{url(ArtifactKind.PDB_ZIP, win32)}";',
        f'var sumLatestInstaller = "{url(ArtifactKind.DLL_EXE, win32)}";',
        "",
        f'var sumLatestExe64 = "{url(ArtifactKind.MAIN_EXE, x64)}";',
        f'var sumLatestPdb64 = "{url(ArtifactKind.PDB_ZIP, x64)}";',
        f'var sumLatestInstaller64 = "{url(ArtifactKind.DLL_EXE, x64)}";',
    ]
    return "\n".join(lines) + "\n"


def update_files(
    *,
    build_type: BuildType,
    codec: NameCodec,
    bucket: str,
    remote_root: str,
    version: str,
    built_on: date,
) -> list[UpdateFile]:
    """Files to upload after the artifacts of `version` are in place."""
    base_url = f"https://{bucket}.s3.amazonaws.com/{build_type.prefix(remote_root)}"
    js_name = "sumadaily.js" if build_type is BuildType.DAILY else "sumatralatest.js"
    channel = build_type.channel
    return [
        UpdateFile(
            key=f"{remote_root}/{js_name}",
            content=_latest_js(codec=codec, base_url=base_url, version=version, built_on=built_on),
        ),
        UpdateFile(key=f"{remote_root}/sumpdf-{channel}-latest.txt", content=version),
        UpdateFile(
            key=f"{remote_root}/sumpdf-{channel}-update.txt",
            content=f"[SumatraPDF]\nLatest {version}\n",
        ),
    ]
