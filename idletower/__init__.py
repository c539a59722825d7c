"""
idletower: idle tower-building game economy.

Functional core in `idletower.core`, persistence in `idletower.state`,
collaborator adapters and the `GameController` shell in `idletower.integration`.
"""

__version__ = "0.1.0"
