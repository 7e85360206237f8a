from assetvault.db.models.metadata_record import ASSET_SCOPE, MetadataRecord

__all__ = ["ASSET_SCOPE", "MetadataRecord"]
