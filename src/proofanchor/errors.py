"""proofanchor.errors — Exception taxonomy for the attestation pipeline."""

from __future__ import annotations

from typing import Optional


class ProofAnchorError(Exception):
    """Base class for all proofanchor failures."""


class ValidationError(ProofAnchorError):
    """A witness (or ledger payload) violates a length, range or ordering invariant."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class NetworkError(ProofAnchorError):
    """A remote request failed after all retries."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        super().__init__(f"request to {url} failed" + (f": {reason}" if reason else ""))


class ExternalToolError(ProofAnchorError):
    """The external prover exited nonzero, timed out, or could not be started.

    ``output`` holds the captured stdout/stderr verbatim.
    """

    def __init__(self, step: str, returncode: Optional[int], output: str = ""):
        self.step = step
        self.returncode = returncode
        self.output = output
        status = "did not complete" if returncode is None else f"exited with status {returncode}"
        message = f"prover step '{step}' {status}"
        if output:
            message += f"\n{output}"
        super().__init__(message)


class ArtifactIOError(ProofAnchorError):
    """Reading or writing a persisted artifact failed."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        super().__init__(f"{path}: {reason}" if reason else path)


class ProofStateError(ProofAnchorError):
    """A prover session was driven through an illegal transition."""


class LedgerError(ProofAnchorError):
    """The ledger rejected a submission, verification record or vote."""


__all__ = [
    "ProofAnchorError",
    "ValidationError",
    "NetworkError",
    "ExternalToolError",
    "ArtifactIOError",
    "ProofStateError",
    "LedgerError",
]
