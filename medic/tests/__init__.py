"""Test suite for Medic diagnosis system.

Organized into three categories:

1. core/: Unit tests for core domain logic
   - Minimal dependencies, fast execution
   - Uses in-memory fakes for ports

2. adapters/: Tests for adapter implementations
   - HTTP adapters against httpx.MockTransport
   - Plugin, CLI runner and output adapters

3. fakes/: Port implementations for testing
   - In-memory implementations of ModelPort, OutputPort, etc.
   - Used by core unit tests
"""
