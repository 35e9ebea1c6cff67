"""External tools: toolchain, signer, compressors, translation check."""

from relbuild.tools.base import Compressor, SelfTestRunner, Signer, Toolchain, TranslationChecker

__all__ = [
    "Compressor",
    "SelfTestRunner",
    "Signer",
    "Toolchain",
    "TranslationChecker",
]
