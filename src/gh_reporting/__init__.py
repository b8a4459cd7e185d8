"""gh-reporting: contributor activity across a GitHub user's or organization's repositories."""

__version__ = "0.1.0"
