"""Adapters connecting the pipeline to storage backends and host runners."""
