"""Web fuzzing building blocks: inputs, an HTTP runner, filters, scrapers and output."""

__version__ = "2.0.0"