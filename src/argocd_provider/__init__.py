# ABOUTME: Argo CD provider package initialization
# ABOUTME: Exposes version information for the declarative Argo CD resource controller

"""
Argo CD provider - drive Argo CD objects from declarative records.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

This is the package initialization file for argocd_provider. It marks the
directory as a package and declares the public API (just the version; the
modules are imported directly).

=============================================================================
WHAT DOES THE PACKAGE DO?
=============================================================================

A resource store holds desired-state records: "there should be an Argo CD
project called team-a with these destinations", "there should be a token
for role ci in project team-a". For each record the provider:

1. RESOLVES how to reach Argo CD. The record names a ProviderConfig; the
   ProviderConfig gives the server address (literally, or indirectly via a
   Secret/ConfigMap key) and the credentials (a Secret key).

2. CONVERGES the Argo CD object toward the record:
   Connect -> Observe -> Create / Update / Delete.

3. REPORTS back: status.atProvider, Ready/Synced conditions, and
   connection details (a project token, for example) written to a Secret.

=============================================================================
PACKAGE STRUCTURE OVERVIEW
=============================================================================

argocd_provider/
├── __init__.py          <- YOU ARE HERE
├── config.py            <- Controller settings (env vars)
├── errors.py            <- Exception hierarchy and the deadline helper
├── diff.py              <- "Is the remote object up to date?"
├── managed.py           <- Connector and the generic convergence engine
├── reconciler.py        <- Chooses the operation, writes conditions, retries
├── apis/                <- pydantic models for records and ProviderConfig
├── controllers/         <- One handler per kind (Project, ApplicationSet, Token)
└── utils/
    ├── client.py        <- HTTP client for the Argo CD REST API
    ├── resolve.py       <- Address and credential resolution
    ├── store.py         <- Keyed store protocol and connection publishing
    ├── logging.py       <- Structured logging and events
    └── safety.py        <- Management policies and rate limiting
"""

# Semantic versioning: MAJOR.MINOR.PATCH. 0.x means the API may still change.
__version__ = "0.1.0"

__all__ = ["__version__"]
