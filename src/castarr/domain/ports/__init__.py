from .cache import CachePort
from .clock import ClockPort
from .episode_catalog import EpisodeCatalogPort
from .manifest_filter import ManifestFilterPort
from .manifest_publisher import ManifestPublisherPort
from .notifier import NotifierPort
from .play_record_store import PlayRecordStorePort
from .player import PlayerHandlePort
from .resolution_detector import ResolutionDetectorPort
from .source_ranker import SourceRankerPort

__all__ = [
    "CachePort",
    "ClockPort",
    "EpisodeCatalogPort",
    "ManifestFilterPort",
    "ManifestPublisherPort",
    "NotifierPort",
    "PlayRecordStorePort",
    "PlayerHandlePort",
    "ResolutionDetectorPort",
    "SourceRankerPort",
]
