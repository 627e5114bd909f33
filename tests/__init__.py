"""
Animalito Test Suite

TEST AXIOMS:
=============
1. No test touches the network; transports are mocked
2. Clocks and sleepers are injected, never patched globally
3. Failures are asserted as data (statuses, provenance), not exceptions
"""
