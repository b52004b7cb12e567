"""Application layer: the aggregation engine and export formats."""
