"""Cross-tab session reconstruction: reassembly, aggregation, archive records."""

from .aggregator import SessionTotals, aggregate_metrics
from .reassembler import MergedSession, ReassemblyAnomaly, reassemble, select_anchor, traverse
from .archive import to_archive_record, dumps_record

__all__ = [
    'SessionTotals',
    'aggregate_metrics',
    'MergedSession',
    'ReassemblyAnomaly',
    'reassemble',
    'select_anchor',
    'traverse',
    'to_archive_record',
    'dumps_record',
]
