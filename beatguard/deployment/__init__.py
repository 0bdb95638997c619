"""Live-streaming and archiving passes used by the transport layer."""

from .rhythm_service import RhythmService, ScanResult, StreamingOutcome, ArchiveOutcome, scan_cookies

__all__ = ['RhythmService', 'ScanResult', 'StreamingOutcome', 'ArchiveOutcome', 'scan_cookies']
