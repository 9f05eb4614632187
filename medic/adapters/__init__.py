"""External adapters for the Medic diagnosis system.

This package contains all external dependencies (HTTP model APIs, the
OpenAI SDK, the console, subprocesses) and provides implementations of
the core port interfaces.

Adapter Organization:

- providers/: Model adapters (hosted HTTP, OpenAI, local Ollama, custom)
  and the factory that selects one
- output/: Typewriter console output and ANSI styling
- host/: The plugin object a build tool calls after each build
- cli/: Command-line host that runs build commands
"""
