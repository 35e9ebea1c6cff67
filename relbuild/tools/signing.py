"""Authenticode signing with signtool.

Signing needs both the tool and the certificate password. When either is
missing the signer reports itself unavailable and the pipeline ships an
unsigned build; once available, any signtool failure is fatal.
"""

from __future__ import annotations

import shutil
from collections.abc import Mapping
from pathlib import Path

from relbuild.core.config import SigningConfig
from relbuild.core.errors import ToolError
from relbuild.core.result import Err, Ok, Result
from relbuild.output.console import ConsoleProtocol, Style
from relbuild.platform.process import format_command, run

__all__ = ["SigntoolSigner"]

_KITS_BIN = Path(r"C:\Program Files (x86)\Windows Kits\10\bin")


def _locate_signtool(configured: str | None) -> Path | None:
    if configured:
        p = Path(configured)
        return p if p.exists() else None
    found = shutil.which("signtool")
    if found:
        return Path(found)
    if _KITS_BIN.is_dir():
        # Newest SDK first
        for sdk in sorted(_KITS_BIN.iterdir(), reverse=True):
            p = sdk / "x64" / "signtool.exe"
            if p.exists():
                return p
    return None


class SigntoolSigner:
    def __init__(
        self,
        *,
        signtool: Path | None,
        cert: Path,
        password: str | None,
        timestamp_url: str,
        console: ConsoleProtocol,
    ) -> None:
        self._signtool = signtool
        self._cert = cert
        self._password = password
        self._timestamp_url = timestamp_url
        self._console = console

    @classmethod
    def from_config(
        cls,
        config: SigningConfig,
        *,
        repo_root: Path,
        env: Mapping[str, str],
        console: ConsoleProtocol,
    ) -> SigntoolSigner:
        return cls(
            signtool=_locate_signtool(config.signtool),
            cert=repo_root / config.cert_path,
            password=env.get(config.password_env) or None,
            timestamp_url=config.timestamp_url,
            console=console,
        )

    def available(self) -> bool:
        return self._signtool is not None and self._password is not None and self._cert.exists()

    def sign(self, path: Path) -> Result[None, ToolError]:
        if self._signtool is None or self._password is None:
            return Err(ToolError("signtool", "signing is not available"))

        cmd = [
            str(self._signtool),
            "sign",
            "/fd",
            "sha256",
            "/tr",
            self._timestamp_url,
            "/td",
            "sha256",
            "/f",
            str(self._cert),
            "/p",
            self._password,
            str(path),
        ]
        shown = [("***" if c == self._password else c) for c in cmd]
        self._console.print(format_command(shown), Style.DIM)
        result = run(cmd, cwd=path.parent)
        if isinstance(result, Err):
            return Err(
                ToolError(
                    "signtool",
                    f"failed to sign {path}",
                    returncode=result.error.returncode,
                    hint=result.error.stderr.strip() or result.error.stdout.strip() or None,
                )
            )
        return Ok(None)
