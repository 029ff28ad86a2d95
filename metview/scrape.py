"""Fetching and parsing of the metrics endpoint."""
from typing import Callable, Dict, Iterable, List
import logging
import math

import httpx
from prometheus_client.metrics_core import Metric
from prometheus_client.parser import text_string_to_metric_families
from prometheus_client.samples import Sample

from metview.series import MetricKind, RawSample

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "text/plain;version=0.0.4;q=1.0,*/*;q=0.1"

# Exposition type names -> kind; "unknown" is how the parser reports untyped families
_KIND_BY_TYPE: Dict[str, MetricKind] = {
    "counter": MetricKind.COUNTER,
    "gauge": MetricKind.GAUGE,
    "untyped": MetricKind.UNTYPED,
    "unknown": MetricKind.UNTYPED,
    "summary": MetricKind.SUMMARY,
    "histogram": MetricKind.HISTOGRAM,
}


class ScrapeError(Exception):
    """Base class for failures of a single scrape."""
    kind = "scrape"


class ScrapeTransportError(ScrapeError):
    """The endpoint could not be reached or did not answer in time."""
    kind = "transport"


class ScrapeStatusError(ScrapeError):
    """The endpoint answered with a non-success status."""
    kind = "status"

    def __init__(self, status_code: int):
        super().__init__(f"got status {status_code} from server")
        self.status_code = status_code


class ScrapeParseError(ScrapeError):
    """The payload is not valid exposition text."""
    kind = "parse"


def _samples_named(suffix: str) -> Callable[[Metric], List[Sample]]:
    def extract(family: Metric) -> List[Sample]:
        wanted = family.name + suffix
        return [s for s in family.samples if s.name == wanted]
    return extract


# One representative sample per series for each kind.
# The parser strips "_total" from counter family names but keeps it on samples.
_EXTRACTORS: Dict[MetricKind, Callable[[Metric], List[Sample]]] = {
    MetricKind.COUNTER: _samples_named("_total"),
    MetricKind.GAUGE: _samples_named(""),
    MetricKind.UNTYPED: _samples_named(""),
    MetricKind.SUMMARY: _samples_named("_sum"),
    MetricKind.HISTOGRAM: _samples_named("_sum"),
}


def _series_name(family: Metric, kind: MetricKind, sample: Sample) -> str:
    if kind in (MetricKind.SUMMARY, MetricKind.HISTOGRAM):
        return family.name
    return sample.name


def samples_from_families(families: Iterable[Metric]) -> List[RawSample]:
    """Flatten parsed metric families into one raw sample per series."""
    samples: List[RawSample] = []

    for family in families:
        kind = _KIND_BY_TYPE.get(family.type)
        if kind is None:
            logger.debug(f"Skipping family {family.name} of unsupported type {family.type}")
            continue

        for sample in _EXTRACTORS[kind](family):
            value = float(sample.value)
            if not math.isfinite(value):
                logger.debug(f"Skipping non-finite sample {sample.name}{sample.labels}: {value}")
                continue
            samples.append(
                RawSample(
                    name=_series_name(family, kind, sample),
                    kind=kind,
                    labels=dict(sample.labels),
                    value=value,
                )
            )

    return samples


def parse_samples(text: str) -> List[RawSample]:
    """
    Parse exposition text into raw samples.

    Raises:
        ScrapeParseError: if the payload cannot be parsed
    """
    try:
        families = list(text_string_to_metric_families(text))
    except ValueError as e:
        raise ScrapeParseError(f"malformed metrics payload: {e}") from e
    return samples_from_families(families)


async def fetch_metrics(client: httpx.AsyncClient, endpoint: str, timeout: float) -> str:
    """
    Fetch the raw exposition text from the endpoint.

    Raises:
        ScrapeTransportError: on connection failure or timeout
        ScrapeStatusError: on a non-200 response
    """
    try:
        response = await client.get(
            endpoint,
            headers={"Accept": ACCEPT_HEADER},
            timeout=timeout,
        )
    except httpx.TimeoutException as e:
        raise ScrapeTransportError(f"timed out after {timeout:g}s fetching {endpoint}") from e
    except httpx.HTTPError as e:
        raise ScrapeTransportError(f"failed to fetch {endpoint}: {e}") from e

    if response.status_code != 200:
        raise ScrapeStatusError(response.status_code)

    return response.text


async def scrape(
    client: httpx.AsyncClient,
    endpoint: str,
    timeout: float = 5.0,
) -> List[RawSample]:
    """Fetch and parse one batch of samples."""
    text = await fetch_metrics(client, endpoint, timeout)
    samples = parse_samples(text)
    logger.debug(f"Scraped {len(samples)} samples from {endpoint}")
    return samples
