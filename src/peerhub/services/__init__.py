# src/peerhub/services/__init__.py
"""Business logic services for the community core.

Use ``peerhub.services.factory`` to build the default service graph.
"""
