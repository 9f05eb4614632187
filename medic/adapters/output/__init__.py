"""Console output adapters: paced typewriter rendering and ANSI styling."""
