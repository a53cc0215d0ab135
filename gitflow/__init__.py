"""gitflow: async git and gh wrappers, output parsers and workflows."""

__version__ = "0.1.0"
