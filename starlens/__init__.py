"""StarLens — rank the stargazers and forkers of a GitHub repository by influence."""

__version__ = "0.1.0"
