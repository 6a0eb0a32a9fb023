"""Measurement extraction pipeline: models, stages and point assembly."""
