"""Project record store and mutation engine for .rivet/systems.yaml."""

__version__ = "0.1.0"
