"""Application shell: wiring and command line entry points."""
