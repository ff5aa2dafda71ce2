"""
AUTOPILOT Finding Detector

Pure membership checks against a repository's root listing and its
.github/workflows listing. Output order is fixed so repeated runs against
an unchanged repo produce the same findings (and therefore the same
ticket summaries to search for).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

README_NAMES = ("readme.md", "readme.txt", "readme")
LICENSE_NAMES = ("license", "license.md", "license.txt", "copying")
GITIGNORE_NAMES = (".gitignore",)

# (marker file, build command, test command). First match wins.
BUILD_MARKERS = (
    ("package.json", "npm install && npm run build", "npm test"),
    ("pom.xml", "mvn clean install", "mvn test"),
    ("requirements.txt", "pip install -r requirements.txt", "pytest"),
)


@dataclass(frozen=True)
class Finding:
    kind: str
    summary: str
    description: str


@dataclass(frozen=True)
class CheckResult:
    kind: str
    label: str
    passed: bool
    detail: str = ""


@dataclass(frozen=True)
class _Check:
    kind: str
    label: str
    title: str
    explanation: str


CHECKS = (
    _Check(
        "readme", "README", "README",
        "is missing a README file. Please add a README.md to document the project.",
    ),
    _Check(
        "license", "LICENSE", "LICENSE",
        "is missing a LICENSE file. Please add an appropriate open source license.",
    ),
    _Check(
        "gitignore", ".gitignore", ".gitignore",
        "is missing a .gitignore file. This is essential to prevent committing "
        "temporary or sensitive files.",
    ),
    _Check(
        "workflows", "CI/CD Workflows", "GitHub Workflows",
        "does not appear to have any CI/CD workflows in .github/workflows. "
        "Please add appropriate Actions workflows.",
    ),
)


def detect_commands(root_files: Sequence[str]) -> tuple[str, str]:
    """Guess (build, test) commands from well-known manifest files."""
    lower = {f.lower() for f in root_files}
    for marker, build_cmd, test_cmd in BUILD_MARKERS:
        if marker in lower:
            return build_cmd, test_cmd
    return "N/A", "N/A"


def check(root_files: Sequence[str], workflow_files: Sequence[str]) -> list[CheckResult]:
    """Run every checklist item, in checklist order."""
    lower = {f.lower() for f in root_files}
    workflow_count = len(workflow_files)

    results = []
    for item in CHECKS:
        if item.kind == "readme":
            passed = any(n in lower for n in README_NAMES)
        elif item.kind == "license":
            passed = any(n in lower for n in LICENSE_NAMES)
        elif item.kind == "gitignore":
            passed = any(n in lower for n in GITIGNORE_NAMES)
        else:
            passed = workflow_count > 0
        detail = f"{workflow_count} file(s)" if item.kind == "workflows" and passed else ""
        results.append(CheckResult(kind=item.kind, label=item.label, passed=passed, detail=detail))
    return results


def render_description(repo_name: str, explanation: str, root_files: Sequence[str]) -> str:
    """Ticket body: repo header, explanation, then the build/test payload."""
    build_cmd, test_cmd = detect_commands(root_files)
    body = f"The repository [{repo_name}|https://github.com/{repo_name}] {explanation}"
    return (
        f"{repo_name}\n\n{body}\n\n"
        f"Payload:\n- Build Command: {build_cmd}\n- Test Command: {test_cmd}"
    )


def detect(
    root_files: Sequence[str],
    workflow_files: Sequence[str],
    repo_name: str,
) -> list[Finding]:
    """
    Produce one Finding per failed checklist item.

    Order is always README, LICENSE, .gitignore, workflows.
    """
    by_kind = {c.kind: c for c in CHECKS}
    findings = []
    for result in check(root_files, workflow_files):
        if result.passed:
            continue
        item = by_kind[result.kind]
        findings.append(Finding(
            kind=item.kind,
            summary=f"Missing {item.title} in {repo_name}",
            description=render_description(repo_name, item.explanation, root_files),
        ))
    return findings
