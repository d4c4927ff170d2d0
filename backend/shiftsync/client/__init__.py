from .offline_queue import OfflineRequestQueue, QueuedRequest, ReplayResult, ShiftSyncClient

__all__ = ['OfflineRequestQueue', 'QueuedRequest', 'ReplayResult', 'ShiftSyncClient']
