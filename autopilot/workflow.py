"""
AUTOPILOT Workflow Generator

Renders a GitHub Actions CI pipeline for the languages we know how to
build. Used by the `workflow` CLI command and the generate_workflow_yaml
tool.
"""

from __future__ import annotations

from typing import Any

import yaml

LANGUAGES: dict[str, dict[str, Any]] = {
    "node": {
        "setup": {
            "name": "Set up Node.js",
            "uses": "actions/setup-node@v4",
            "with": {"node-version": "20", "cache": "npm"},
        },
        "build": "npm ci && npm run build --if-present",
        "test": "npm test",
    },
    "python": {
        "setup": {
            "name": "Set up Python",
            "uses": "actions/setup-python@v5",
            "with": {"python-version": "3.12"},
        },
        "build": "python -m pip install --upgrade pip && pip install -r requirements.txt",
        "test": "pytest",
    },
    "dotnet": {
        "setup": {
            "name": "Set up .NET",
            "uses": "actions/setup-dotnet@v4",
            "with": {"dotnet-version": "8.0.x"},
        },
        "build": "dotnet build --configuration Release",
        "test": "dotnet test --no-build --configuration Release",
    },
}

DEPLOY_TARGETS = ("azure-webapp",)


def generate_workflow_yaml(
    language: str,
    repo_name: str,
    build_command: str | None = None,
    test_command: str | None = None,
    deploy_target: str | None = None,
) -> str:
    """Return the workflow file contents for .github/workflows/ci.yml."""
    if language not in LANGUAGES:
        raise ValueError(f"Unsupported language: {language}. Use one of {sorted(LANGUAGES)}")
    if deploy_target and deploy_target not in DEPLOY_TARGETS:
        raise ValueError(f"Unsupported deploy target: {deploy_target}. Use one of {DEPLOY_TARGETS}")

    lang = LANGUAGES[language]
    jobs: dict[str, Any] = {
        "build": {
            "runs-on": "ubuntu-latest",
            "steps": [
                {"name": "Checkout", "uses": "actions/checkout@v4"},
                lang["setup"],
                {"name": "Build", "run": build_command or lang["build"]},
                {"name": "Test", "run": test_command or lang["test"]},
            ],
        }
    }

    if deploy_target == "azure-webapp":
        app_name = repo_name.split("/")[-1]
        jobs["deploy"] = {
            "needs": "build",
            "runs-on": "ubuntu-latest",
            "if": "github.ref == 'refs/heads/main' && github.event_name == 'push'",
            "steps": [
                {"name": "Checkout", "uses": "actions/checkout@v4"},
                {
                    "name": "Deploy to Azure Web App",
                    "uses": "azure/webapps-deploy@v3",
                    "with": {
                        "app-name": app_name,
                        "publish-profile": "${{ secrets.AZURE_WEBAPP_PUBLISH_PROFILE }}",
                        "package": ".",
                    },
                },
            ],
        }

    workflow = {
        "name": "CI",
        "on": {
            "push": {"branches": ["main"]},
            "pull_request": {"branches": ["main"]},
        },
        "jobs": jobs,
    }

    header = f"# CI pipeline for {repo_name} ({language})\n"
    return header + yaml.safe_dump(workflow, sort_keys=False, default_flow_style=False)
