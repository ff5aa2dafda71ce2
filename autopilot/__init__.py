"""
AUTOPILOT — Repository Health Inspector

Checks a GitHub repository for the artifacts every project should carry
(README, LICENSE, .gitignore, CI workflows) and keeps exactly one Jira
ticket open per missing artifact.
"""

__version__ = "1.0.0"
