# ABOUTME: Utilities package initialization for the Argo CD provider
# ABOUTME: Contains the REST client, config resolution, store protocols, logging, and policy guards

"""
Argo CD Provider Utilities Package

Shared utilities:
    - client.py: Argo CD REST client and the default client factory
    - resolve.py: Server address and credential resolution from ProviderConfig
    - store.py: Keyed store protocols, in-memory store, connection publishing
    - logging.py: Structured logging with reconcile IDs and events
    - safety.py: Management/deletion policy guard and rate limiting
"""
