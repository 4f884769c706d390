"""Allow running as ``python -m kernel_rebuild``."""

from kernel_rebuild.cli import app

app()
