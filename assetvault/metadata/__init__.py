from assetvault.metadata.registry import InMemoryMetadataRegistry, MetadataRegistry

__all__ = ["InMemoryMetadataRegistry", "MetadataRegistry"]
