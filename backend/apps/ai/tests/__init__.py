"""
Tests for the AI app.

This package contains tests for:
- Neural network infrastructure
- Player implementations
- Neuroevolution operators and the population lifecycle
- Match runner and worker pool
- Background, interactive and controller-driven training
- Saved genomes and the evolve command
"""
