"""steelchord: pedal steel copedent modeling and chord/scale lookup."""

__version__ = "0.1.0"
