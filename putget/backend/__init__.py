"""Storage service adapters used by the conformance matrix."""
