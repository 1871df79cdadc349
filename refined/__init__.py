"""refined: static verification of refinement contracts via an SMT solver."""

__version__ = "0.1.0"

from refined.errors import ErrorKind, VerificationError
from refined.prove import VerificationResult, prove, verify

__all__ = ["ErrorKind", "VerificationError", "VerificationResult", "prove", "verify", "__version__"]
