from assetvault.store.asset_store import ANONYMOUS, CLASSIFICATION_KEY, AssetStore
from assetvault.store.ids import generate_asset_id

__all__ = ["ANONYMOUS", "CLASSIFICATION_KEY", "AssetStore", "generate_asset_id"]
