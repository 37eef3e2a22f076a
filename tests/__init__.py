"""
roleguard test suite.

This package contains tests for the roleguard policy engine:
- Ownership resolution tests
- Registry, cell and matrix tests
- Evaluator and enforcement guard tests
- Policy document and configuration tests
- Client capability query tests
"""
