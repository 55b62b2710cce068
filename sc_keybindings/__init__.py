"""Star Citizen keybinding extractor: Data.p4k → normalized keybinding JSON."""

__version__ = '1.0.0'
