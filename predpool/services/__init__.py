"""Domain services: scoring, lifecycle, fixtures, predictions, aggregation."""
