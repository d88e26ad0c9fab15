"""Application layer: the Model use case and the field transform services."""
