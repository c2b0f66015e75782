"""CSV analytics core: column type inference, summary statistics, filtering
and undoable transformations over tabular data."""

__version__ = "0.1.0"
