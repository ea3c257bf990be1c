from .prepare_playback import PlaybackPreparationUseCase, PreparedPlayback

__all__ = ["PlaybackPreparationUseCase", "PreparedPlayback"]
