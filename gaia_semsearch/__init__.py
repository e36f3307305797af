"""
GAIA SemSearch - Semantic-search index lifecycle manager.

Keeps the background code-indexing daemon healthy inside the dev container:
- Resolves a reachable inference backend (Ollama)
- Syncs the indexer configuration from its template
- Invalidates the on-disk index when model, binary or config change
- Supervises the ``watch`` daemon and retries deferred initialization
"""

__version__ = "0.1.0"
