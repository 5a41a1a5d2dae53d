"""
Top-level package for the package_validation project.

The verification engine lives under `package_validation.content_check`.
"""

__all__: list[str] = []
