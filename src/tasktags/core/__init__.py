"""Core engine: identifiers, store I/O, moves, locking, resilience, healing."""
