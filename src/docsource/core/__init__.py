"""Core engine: path derivation, ingestion, references, sidebar and watch sync.

Typical use from a host:

    from docsource.core.options import load_source_options
    from docsource.core.source import DocumentationSource
    from docsource.core.store import MemoryContentStore

    options = load_source_options()
    store = MemoryContentStore()
    source = DocumentationSource(options)
    report = await source.load_source(store)
"""
