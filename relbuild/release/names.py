"""Canonical artifact names in the remote store.

Every published file is named from (kind, pre-release counter, variant):

    SumatraPDF-prerelease-10169.exe            MAIN_EXE, Win32
    SumatraPDF-prerelease-10169-64.exe         MAIN_EXE, x64
    SumatraPDF-prerelease-10169-install.exe    DLL_EXE, Win32
    SumatraPDF-prerelease-10169-install-64.exe DLL_EXE, x64
    SumatraPDF-prerelease-10169.pdb.zip        PDB_ZIP, Win32
    SumatraPDF-prerelease-10169.pdb-64.lzsa    PDB_LZSA, x64
    SumatraPDF-prerelease-10169-manifest.txt   MANIFEST (one per version)

Local files carry the same name for both variants (SumatraPDF.exe in
out/rel32 and out/rel64); locally the variant is known from the directory
only, never from the file name.

Decoding walks NameCodec.patterns in declared order and the first full match
wins. The order is part of the contract: x64 patterns come before generic
ones, and the manifest patterns come last.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

__all__ = [
    "ArtifactKind",
    "BuildVariant",
    "DecodedName",
    "NameCodec",
    "NamePattern",
    "PUBLISHED_KINDS",
    "is_manifest_name",
]


class BuildVariant(Enum):
    """Target platform of a build. The value is the toolchain platform flag."""

    WIN32 = "Win32"
    X64 = "x64"

    @property
    def platform(self) -> str:
        return self.value

    @property
    def out_subdir(self) -> str:
        """Output directory under the build output root."""
        return "rel64" if self is BuildVariant.X64 else "rel32"

    @property
    def artifacts_subdir(self) -> str:
        """Directory under artifacts/ that CI uploads from."""
        return "64" if self is BuildVariant.X64 else "32"

    @property
    def name_suffix(self) -> str:
        return "-64" if self is BuildVariant.X64 else ""


class ArtifactKind(Enum):
    MAIN_EXE = "main-exe"
    DLL_EXE = "dll-exe"
    FILTER_DLL = "filter-dll"
    PREVIEW_DLL = "preview-dll"
    PDB_ZIP = "pdb-zip"
    PDB_LZSA = "pdb-lzsa"
    MANIFEST = "manifest"

    @property
    def has_variant(self) -> bool:
        return self is not ArtifactKind.MANIFEST

    def local_name(self, product: str) -> str:
        """File name in the variant output directory (or artifacts/ for the manifest)."""
        return _LOCAL_NAMES[self].format(p=product)


# Uploaded per variant, in this order; the manifest goes after all of them.
PUBLISHED_KINDS: tuple[ArtifactKind, ...] = (
    ArtifactKind.MAIN_EXE,
    ArtifactKind.DLL_EXE,
    ArtifactKind.PDB_ZIP,
    ArtifactKind.PDB_LZSA,
)

_LOCAL_NAMES: dict[ArtifactKind, str] = {
    ArtifactKind.MAIN_EXE: "{p}.exe",
    ArtifactKind.DLL_EXE: "{p}-dll.exe",
    ArtifactKind.FILTER_DLL: "PdfFilter.dll",
    ArtifactKind.PREVIEW_DLL: "PdfPreview.dll",
    ArtifactKind.PDB_ZIP: "{p}.pdb.zip",
    ArtifactKind.PDB_LZSA: "{p}.pdb.lzsa",
    ArtifactKind.MANIFEST: "manifest.txt",
}

# {p}: "<product>-<channel>", {v}: version, {s}: variant suffix
_REMOTE_TEMPLATES: dict[ArtifactKind, str] = {
    ArtifactKind.MAIN_EXE: "{p}-{v}{s}.exe",
    ArtifactKind.DLL_EXE: "{p}-{v}-install{s}.exe",
    ArtifactKind.FILTER_DLL: "{p}-{v}-PdfFilter{s}.dll",
    ArtifactKind.PREVIEW_DLL: "{p}-{v}-PdfPreview{s}.dll",
    ArtifactKind.PDB_ZIP: "{p}-{v}.pdb{s}.zip",
    ArtifactKind.PDB_LZSA: "{p}-{v}.pdb{s}.lzsa",
    ArtifactKind.MANIFEST: "{p}-{v}-manifest.txt",
}

# Most specific first within each variant block.
_DECODE_KIND_ORDER: tuple[ArtifactKind, ...] = (
    ArtifactKind.DLL_EXE,
    ArtifactKind.FILTER_DLL,
    ArtifactKind.PREVIEW_DLL,
    ArtifactKind.MAIN_EXE,
    ArtifactKind.PDB_LZSA,
    ArtifactKind.PDB_ZIP,
)

_LEGACY_MANIFEST_RE = re.compile(r"manifest-([0-9]+)\.txt")
_MANIFEST_NAME_RE = re.compile(r"(^|-)manifest(-[0-9]+)?\.txt\Z")


def is_manifest_name(name: str) -> bool:
    """True for current and legacy manifest file names."""
    return _MANIFEST_NAME_RE.search(name) is not None


@dataclass(frozen=True, slots=True)
class NamePattern:
    regex: re.Pattern[str]
    kind: ArtifactKind
    variant: BuildVariant | None


@dataclass(frozen=True, slots=True)
class DecodedName:
    """A decoded remote name. `version_str` is the counter as written in the name."""

    kind: ArtifactKind
    version: int
    variant: BuildVariant | None
    version_str: str = field(default="", compare=False)


class NameCodec:
    """Bidirectional mapping between (kind, version, variant) and remote names.

    Attributes:
        product: Product name, e.g. "SumatraPDF".
        channel: Build channel word, e.g. "prerelease" or "daily".
        patterns: Decode table, evaluated in order; first match wins.
    """

    def __init__(self, product: str = "SumatraPDF", channel: str = "prerelease") -> None:
        self.product = product
        self.channel = channel
        self.prefix = f"{product}-{channel}"
        self.patterns: tuple[NamePattern, ...] = self._build_patterns()

    def encode(
        self,
        kind: ArtifactKind,
        version: int | str,
        variant: BuildVariant | None = None,
    ) -> str:
        """Canonical remote name. The manifest ignores variant.

        Raises:
            ValueError: If a variant-bearing kind is given no variant.
        """
        if kind.has_variant and variant is None:
            raise ValueError(f"{kind.name} requires a build variant")
        suffix = variant.name_suffix if (kind.has_variant and variant is not None) else ""
        return _REMOTE_TEMPLATES[kind].format(p=self.prefix, v=version, s=suffix)

    def decode(self, name: str) -> DecodedName | None:
        """Parse a remote base name; None if no pattern matches."""
        for pattern in self.patterns:
            m = pattern.regex.fullmatch(name)
            if m is not None:
                return DecodedName(
                    kind=pattern.kind,
                    version=int(m.group(1)),
                    variant=pattern.variant,
                    version_str=m.group(1),
                )
        return None

    def matching_patterns(self, name: str) -> list[NamePattern]:
        """Every pattern that fully matches `name` (diagnostics and tests)."""
        return [p for p in self.patterns if p.regex.fullmatch(name) is not None]

    def _build_patterns(self) -> tuple[NamePattern, ...]:
        patterns: list[NamePattern] = []
        for variant in (BuildVariant.X64, BuildVariant.WIN32):
            for kind in _DECODE_KIND_ORDER:
                patterns.append(
                    NamePattern(
                        regex=self._compile(_REMOTE_TEMPLATES[kind], variant.name_suffix),
                        kind=kind,
                        variant=variant,
                    )
                )
        patterns.append(
            NamePattern(
                regex=self._compile(_REMOTE_TEMPLATES[ArtifactKind.MANIFEST], ""),
                kind=ArtifactKind.MANIFEST,
                variant=None,
            )
        )
        patterns.append(
            NamePattern(regex=_LEGACY_MANIFEST_RE, kind=ArtifactKind.MANIFEST, variant=None)
        )
        return tuple(patterns)

    def _compile(self, template: str, suffix: str) -> re.Pattern[str]:
        before, after = template.format(p=self.prefix, v="\0", s=suffix).split("\0")
        return re.compile(re.escape(before) + r"([0-9]+)" + re.escape(after))
