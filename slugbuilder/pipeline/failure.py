"""Failure triage for the diagnostic log.

Known failure signatures are matched against the log of a failed build
to point the user at a concrete fix in addition to the generic notice.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

GENERIC_FAILURE_MESSAGE = (
    "We're sorry this build is failing! If you can't find the issue in the "
    "build log, check that the same commands succeed on a clean checkout."
)


@dataclass(frozen=True)
class FailureSignature:
    """A recognizable failure and its remediation."""

    code: str
    pattern: re.Pattern[str]
    message: str


FAILURE_SIGNATURES: tuple[FailureSignature, ...] = (
    FailureSignature(
        code="dependencies_checked_in",
        pattern=re.compile(r"WARNING: (\S+) checked into source control"),
        message=(
            "{0} is checked into source control. Modules compiled on another "
            "platform can break the rebuild: add {0} to .gitignore and let "
            "the build install it."
        ),
    ),
    FailureSignature(
        code="unresolved_range",
        pattern=re.compile(r"Unable to resolve (node|npm) version range '([^']*)'"),
        message=(
            "engines.{0} '{1}' in package.json does not match any published "
            "version. Declare a supported range, e.g. \"{0}\": \"20.x\"."
        ),
    ),
    FailureSignature(
        code="outdated_npm",
        pattern=re.compile(r"WARNING: npm (1\.\S*) has known issues"),
        message=(
            "npm {0} is no longer supported. Declare a newer version in "
            "engines.npm in package.json."
        ),
    ),
    FailureSignature(
        code="missing_package_json",
        pattern=re.compile(r"npm ERR! (?:enoent|code ENOENT).*package\.json"),
        message=(
            "npm could not find a package.json it needed during install. Make "
            "sure package.json is committed at the root of the application and "
            "of every local file: dependency."
        ),
    ),
    FailureSignature(
        code="peer_dependency",
        pattern=re.compile(r"npm ERR! (?:peerinvalid|code ERESOLVE)"),
        message=(
            "A peer dependency conflict stopped the install. Align the "
            "conflicting versions in package.json."
        ),
    ),
    FailureSignature(
        code="native_addon",
        pattern=re.compile(r"gyp ERR!"),
        message=(
            "A native addon failed to compile. Check that the module supports "
            "the installed Node.js version."
        ),
    ),
    FailureSignature(
        code="hook_failed",
        pattern=re.compile(r"Lifecycle hook '([^']+)' failed"),
        message="The '{0}' script in package.json failed. Run it locally to reproduce.",
    ),
)


@dataclass(frozen=True)
class Remediation:
    """A targeted message for a recognized failure."""

    code: str
    message: str


def scan_failure(
    log_text: str,
    signatures: tuple[FailureSignature, ...] = FAILURE_SIGNATURES,
) -> list[Remediation]:
    """Match known failure signatures against a build log.

    Args:
        log_text: Full diagnostic log.
        signatures: Signatures to look for, in reporting order.

    Returns:
        One remediation per matched signature (first match only).
    """
    found: list[Remediation] = []
    for signature in signatures:
        match = signature.pattern.search(log_text)
        if match:
            found.append(
                Remediation(signature.code, signature.message.format(*match.groups()))
            )
    return found


__all__ = [
    "FAILURE_SIGNATURES",
    "GENERIC_FAILURE_MESSAGE",
    "FailureSignature",
    "Remediation",
    "scan_failure",
]
