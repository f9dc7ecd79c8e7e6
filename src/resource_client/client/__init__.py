"""Client package for the resource API.

Provides the transport, token lifecycle and CRUD layers:
- ``transport``: ``HttpTransport`` request/response wrapper over httpx
- ``token_manager``: bearer token caching with single-flight acquisition
- ``grants``: OAuth2 grant requests and the default token fetch strategy
- ``resource_client``: CRUD verbs, listing aggregation and retry-on-expiry
"""
