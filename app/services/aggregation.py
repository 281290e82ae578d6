"""
Paginated metric aggregation over the Admin API

Every dashboard metric is one MetricSpec: which connection to page through,
which fields to select, a predicate over a single node, and the identifier
used for deduplication. Counts are always the size of a key set so that a
record seen on two pages is counted once.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from app.core.config import settings
from app.services.date_ranges import ResolvedDateRange, TimeWindow
from app.services.shopify_client import ShopifyAdminClient

Record = Dict[str, Any]

@dataclass(frozen=True)
class MetricSpec:
    name: str
    connection: str
    fields: str
    predicate: Callable[[Record], bool]
    key: Callable[[Record], Optional[str]]
    # a key counts only after this many matching records
    min_occurrences: int = 1
    # count everything created up to the window end
    cumulative: bool = False

@dataclass
class RecordBatch:
    records: List[Record] = field(default_factory=list)
    truncated: bool = False

@dataclass
class MetricResult:
    name: str
    keys: Set[str] = field(default_factory=set)
    truncated: bool = False

    @property
    def count(self) -> int:
        return len(self.keys)

@dataclass
class DataPoint:
    date: str
    count: int

@dataclass
class MetricSeries:
    name: str
    data_points: List[DataPoint]
    keys: Set[str]
    truncated: bool = False

    @property
    def total(self) -> int:
        """Distinct keys behind the full range"""
        return len(self.keys)

def merge_fields(fragments: Iterable[str]) -> str:
    """Join selection sets, dropping exact duplicates"""
    return "\n".join(dict.fromkeys(fragment.strip() for fragment in fragments))

async def collect_records(
    client: ShopifyAdminClient,
    connection: str,
    fields: str,
    search: Optional[str] = None,
    page_size: Optional[int] = None,
    cap: Optional[int] = None,
    scope: Optional[str] = None,
) -> RecordBatch:
    """
    Page through a connection until exhaustion or the record cap

    Any error payload aborts the whole walk, no partial batch is returned.
    When the cap cuts the walk short the batch is flagged truncated.
    """
    page_size = page_size or settings.METRIC_PAGE_SIZE
    records: List[Record] = []
    cursor = None

    while True:
        page = await client.fetch_page(
            connection,
            fields,
            search=search,
            cursor=cursor,
            first=page_size,
            scope=scope,
        )
        records.extend(page.nodes)

        if cap is not None and len(records) >= cap:
            truncated = len(records) > cap or page.has_next_page
            return RecordBatch(records=records[:cap], truncated=truncated)

        if not page.has_next_page or not page.end_cursor:
            return RecordBatch(records=records)

        cursor = page.end_cursor

def matching_keys(records: Iterable[Record], spec: MetricSpec) -> Set[str]:
    """
    Keys of the records passing the predicate

    Occurrences are distinct record ids per key, so a record served again on
    a later page never counts twice towards min_occurrences.
    """
    occurrences: Dict[str, Set[str]] = defaultdict(set)

    for position, record in enumerate(records):
        if not spec.predicate(record):
            continue
        key = spec.key(record)
        if key:
            occurrences[key].add(record.get("id") or f"#{position}")

    return {key for key, seen in occurrences.items() if len(seen) >= spec.min_occurrences}

async def aggregate_many(
    client: ShopifyAdminClient,
    specs: Sequence[MetricSpec],
    window: TimeWindow,
    page_size: Optional[int] = None,
    cap: Optional[int] = None,
) -> Dict[str, MetricResult]:
    """
    Evaluate several metrics over one window

    Specs sharing a connection and window shape are served by a single
    paginated fetch with their selection sets merged.
    """
    if cap is None:
        cap = settings.METRIC_RECORD_CAP

    groups: Dict[Tuple[str, bool], List[MetricSpec]] = defaultdict(list)
    for spec in specs:
        groups[(spec.connection, spec.cumulative)].append(spec)

    results: Dict[str, MetricResult] = {}
    for (connection, cumulative), group in groups.items():
        batch = await collect_records(
            client,
            connection,
            merge_fields(spec.fields for spec in group),
            search=window.search(cumulative=cumulative),
            page_size=page_size,
            cap=cap,
        )
        for spec in group:
            results[spec.name] = MetricResult(
                name=spec.name,
                keys=matching_keys(batch.records, spec),
                truncated=batch.truncated,
            )

    return results

async def aggregate_metric(
    client: ShopifyAdminClient,
    spec: MetricSpec,
    window: TimeWindow,
    page_size: Optional[int] = None,
    cap: Optional[int] = None,
) -> MetricResult:
    results = await aggregate_many(client, [spec], window, page_size=page_size, cap=cap)
    return results[spec.name]

async def metric_series(
    client: ShopifyAdminClient,
    specs: Sequence[MetricSpec],
    date_range: ResolvedDateRange,
    page_size: Optional[int] = None,
    cap: Optional[int] = None,
) -> Dict[str, MetricSeries]:
    """One or two data points per metric, the last one covering the full range"""
    series = {
        spec.name: MetricSeries(name=spec.name, data_points=[], keys=set())
        for spec in specs
    }

    for window in date_range.sample_windows():
        results = await aggregate_many(client, specs, window, page_size=page_size, cap=cap)
        for name, result in results.items():
            entry = series[name]
            entry.data_points.append(DataPoint(date=window.label, count=result.count))
            entry.keys = result.keys
            entry.truncated = entry.truncated or result.truncated

    return series
