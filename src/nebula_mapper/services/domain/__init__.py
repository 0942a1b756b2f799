"""
Domain Layer

This package contains the mapping-driven compilation logic organized by
domain area. Domain services work on already-parsed documents and mappings
and do not read files themselves (the CLI does that).

Domains:
- json_path: Slash-delimited path resolution over JSON documents
- transform: Named value transforms
- graph: Nebula Graph schema derivation (CREATE/INDEX/DROP statements)
- json_to_graph: JSON to INSERT/UPSERT statement compilation
- mapping: Mapping loading and validation
"""
