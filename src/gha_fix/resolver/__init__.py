from gha_fix.resolver.github import GITHUB_API_URL, GitHubVersionResolver, most_specific_tag
from gha_fix.resolver.memory import InMemoryVersionResolver

__all__ = [
    "GITHUB_API_URL",
    "GitHubVersionResolver",
    "InMemoryVersionResolver",
    "most_specific_tag",
]
