from .media_asset import MediaAsset

__all__ = ["MediaAsset"]
