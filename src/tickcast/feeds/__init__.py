from tickcast.feeds.base import CrossAssetSignal, StaticCrossAssetSignal, TickFeed

__all__ = [
    "CrossAssetSignal",
    "StaticCrossAssetSignal",
    "TickFeed",
]
