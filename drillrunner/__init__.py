"""Run, verify, watch and report on small Rust learning exercises."""

__version__ = "5.5.1"