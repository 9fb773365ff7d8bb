"""Infrastructure layer package.

Implements Port interfaces with concrete adapters (PostgreSQL, Synapse).
The authorization core in src.authz MUST NOT import adapters directly;
src.main wires them in.
"""
