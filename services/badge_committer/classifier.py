"""Classification of git push failures into retryable and fatal kinds."""

import re
from typing import Dict, Tuple

from shared.models import PushErrorKind

# An HTTP status code on its own, not part of a ref name such as "release-404"
HTTP_STATUS = r"(?<![\w./-]){code}(?![\w./-])"

# Checked in order: authentication before the network patterns, since an
# HTTP 403 is also reported as "unable to access".
PUSH_ERROR_PATTERNS: Tuple[Tuple[PushErrorKind, Tuple[str, ...]], ...] = (
    (PushErrorKind.PATH_ESCAPE, ("outside repository", "outside of the repository")),
    (PushErrorKind.AUTHENTICATION, (
        "permission denied",
        "authentication failed",
        "could not read username",
        "could not read password",
        "invalid username or password",
        HTTP_STATUS.format(code=403),
        "access denied",
        "not granted",
        "protected branch",
    )),
    (PushErrorKind.NOT_FOUND, ("repository not found", HTTP_STATUS.format(code=404))),
    (PushErrorKind.NO_REMOTE, (
        "no remote",
        "does not appear to be a git repository",
        "no configured push destination",
    )),
    (PushErrorKind.TIMEOUT, ("timed out", "timeout", "did not complete")),
    (PushErrorKind.NETWORK, (
        "could not resolve host",
        "connection refused",
        "connection reset",
        "network is unreachable",
        "unable to access",
        "early eof",
        "hung up",
        "temporary failure",
    )),
    (PushErrorKind.NON_FAST_FORWARD, ("non-fast-forward", "fetch first", "updates were rejected")),
)

PUSH_ERROR_DESCRIPTIONS: Dict[PushErrorKind, str] = {
    PushErrorKind.AUTHENTICATION: "authentication or permission error",
    PushErrorKind.NOT_FOUND: "remote repository not found",
    PushErrorKind.NO_REMOTE: "no remote configured",
    PushErrorKind.PATH_ESCAPE: "path outside the repository",
    PushErrorKind.TIMEOUT: "timed out",
    PushErrorKind.NETWORK: "network failure",
    PushErrorKind.NON_FAST_FORWARD: "rejected, remote has newer commits",
    PushErrorKind.UNKNOWN: "unexpected error",
}

PUSH_ERROR_SUGGESTIONS: Dict[PushErrorKind, str] = {
    PushErrorKind.AUTHENTICATION: (
        "Check that the token is valid and grants write access to repository contents "
        "(e.g. 'permissions: contents: write' in the workflow)."
    ),
    PushErrorKind.NOT_FOUND: "Check the remote URL and that the token can see the repository.",
    PushErrorKind.NO_REMOTE: "Add the remote (git remote add origin <url>) or set GIT__REMOTE.",
    PushErrorKind.PATH_ESCAPE: "Badge paths must stay inside the repository working tree.",
    PushErrorKind.TIMEOUT: "The remote did not answer in time; try again later.",
    PushErrorKind.NETWORK: "Check network connectivity to the remote.",
    PushErrorKind.NON_FAST_FORWARD: "Another run updated the branch; re-run to pick up its changes.",
    PushErrorKind.UNKNOWN: "Check the git output above for details.",
}


def classify_push_error(error: str) -> PushErrorKind:
    """Map git push error text to a PushErrorKind."""
    text = (error or "").lower()
    for kind, patterns in PUSH_ERROR_PATTERNS:
        if any(re.search(pattern, text) for pattern in patterns):
            return kind
    return PushErrorKind.UNKNOWN
