"""
IDSpaceCrawler - walk the idGames Archive ID space one file at a time

The crawler requests file IDs from `start_at` upwards, one blocking request
at a time, and stops on the first transport/HTTP failure.  The API has no
"end of archive" marker; past the last file it answers with errors, which
either exhaust the error budget or fail the request outright.

    crawler = IDSpaceCrawler(XMLResponseParser(), start_at=1)
    result = crawler.run()
    write_file_map(result.file_map, sys.stdout)
"""
import logging
import random
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import requests

from constants import (
    DELAY_TIME,
    IDGAMES_API_URL,
    PARSE_ERROR_THRESHOLD,
    POPULATE_ERROR_THRESHOLD,
    REQUEST_TIMEOUT,
    USER_AGENT,
)
from exceptions import CatalogError, ErrorKind, ErrorLevel
from metrics import ACTIVE_CRAWLS, crawl_current_id, crawl_errors_total, crawl_requests_total
from records import ArchiveRecord


class CrawlState:
    CONTINUING = "continuing"
    STOPPED_TRANSPORT = "stopped-fatal-transport"
    STOPPED_ERROR_BUDGET = "stopped-error-budget"
    STOPPED_DEBUG_CAP = "stopped-debug-cap"
    STOPPED_CANCELLED = "stopped-cancelled"

    # States a caller should treat as a failed run
    FATAL = (STOPPED_TRANSPORT, STOPPED_ERROR_BUDGET)


@dataclass
class CrawlOutcome:
    file_id: int
    path: Optional[str] = None
    record: Optional[ArchiveRecord] = None
    error: Optional[CatalogError] = None
    state: str = CrawlState.CONTINUING

    @property
    def ok(self):
        return self.path is not None


@dataclass
class CrawlResult:
    state: str
    file_map: Dict[int, str] = field(default_factory=dict)
    outcomes: List[CrawlOutcome] = field(default_factory=list)
    total_requests: int = 0
    populate_errors: int = 0
    parse_errors: int = 0
    database_errors: int = 0
    last_error: Optional[CatalogError] = None

    @property
    def is_fatal(self):
        return self.state in CrawlState.FATAL


class IDSpaceCrawler:
    def __init__(
        self,
        parser,
        api_url=IDGAMES_API_URL,
        start_at=1,
        random_wait=True,
        random_wait_time=DELAY_TIME,
        debug_requests=None,
        die_on_error=True,
        populate_error_threshold=POPULATE_ERROR_THRESHOLD,
        parse_error_threshold=PARSE_ERROR_THRESHOLD,
        store=None,
        session=None,
        timeout=REQUEST_TIMEOUT,
        user_agent=USER_AGENT,
        logger=None,
        sleep=None,
        rng=random.random,
        cancel_event=None,
    ):
        if start_at is None or int(start_at) < 1:
            raise ValueError(f"File IDs start at 1, got {start_at}")
        self.parser = parser
        self.api_url = api_url
        self.file_id = int(start_at)
        self.random_wait = random_wait
        self.random_wait_time = random_wait_time
        self.debug_requests = debug_requests
        self.die_on_error = die_on_error
        self.populate_error_threshold = populate_error_threshold
        self.parse_error_threshold = parse_error_threshold
        self.store = store
        self.timeout = timeout
        self.logger = logger or logging.getLogger("main")
        self.rng = rng
        self.cancel_event = cancel_event or threading.Event()
        # Waiting on the cancel event lets cancel() cut the inter-request delay short
        self.sleep = sleep or self.cancel_event.wait

        self._owns_session = session is None
        self.session = session or requests.Session()
        if self._owns_session:
            self.session.headers.update({"User-Agent": user_agent})

        self.state = CrawlState.CONTINUING
        self.file_map = {}
        self.total_requests = 0
        self.populate_errors = 0
        self.parse_errors = 0
        self.database_errors = 0
        self.last_error = None

    def build_url(self, file_id):
        url = f"{self.api_url}?action=get&id={file_id}"
        if self.parser.output_format == "json":
            url += "&out=json"
        return url

    def next_delay(self):
        """Jittered delay in [0, random_wait_time)"""
        if not self.random_wait or not self.random_wait_time:
            return 0
        return self.rng() * self.random_wait_time

    def cancel(self):
        self.cancel_event.set()

    def interrupt(self):
        """Stop a crawl whose current step was cut short, e.g. by KeyboardInterrupt"""
        self.cancel_event.set()
        if not self.finished:
            self.logger.info(f"Crawl interrupted at ID {self.file_id}")
            self._finish(CrawlOutcome(file_id=self.file_id), CrawlState.STOPPED_CANCELLED)

    @property
    def finished(self):
        return self.state != CrawlState.CONTINUING

    def step(self) -> CrawlOutcome:
        """Request the current file ID, process the answer and advance to the next ID"""
        if self.finished:
            raise RuntimeError(f"Crawl already finished ({self.state})")

        file_id = self.file_id
        if self.cancel_event.is_set():
            self.logger.info(f"Crawl cancelled before requesting ID {file_id}")
            return self._finish(CrawlOutcome(file_id=file_id), CrawlState.STOPPED_CANCELLED)

        delay = self.next_delay()
        outcome = self._fetch(file_id)
        self.logger.debug(f"Finished parsing of ID {file_id}")
        self.file_id += 1

        if outcome.state == CrawlState.CONTINUING and self.debug_requests is not None \
                and self.total_requests >= self.debug_requests:
            self.logger.info(f"Reached debug request cap of {self.debug_requests} request(s)")
            outcome.state = CrawlState.STOPPED_DEBUG_CAP

        if outcome.state != CrawlState.CONTINUING:
            return self._finish(outcome, outcome.state)

        if delay:
            self.logger.debug(f"Sleeping for {delay:.2f} seconds...")
            self.sleep(delay)
        return outcome

    def _fetch(self, file_id):
        outcome = CrawlOutcome(file_id=file_id)
        url = self.build_url(file_id)
        self.logger.debug(f"Fetching {url}")
        crawl_current_id.set(file_id)
        self.total_requests += 1

        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            crawl_requests_total.labels(outcome="http_error").inc()
            return self._fatal(outcome, ErrorKind.HTTP, f"ID: {file_id}; HTTP request failed", str(e))
        except requests.exceptions.RequestException as e:
            crawl_requests_total.labels(outcome="transport_error").inc()
            return self._fatal(outcome, ErrorKind.TRANSPORT, f"ID: {file_id}; request failed", str(e))

        self.logger.debug(f"HTTP API request is successful for {file_id}")
        data, error = self.parser.parse(response.content)
        if error:
            crawl_requests_total.labels(outcome="parse_error").inc()
            self.parse_errors += 1
            self._report(outcome, error)
            if self._budget_exhausted(self.parse_errors, self.parse_error_threshold):
                self.logger.error("Too many response parsing errors!")
                outcome.state = CrawlState.STOPPED_ERROR_BUDGET
            return outcome

        record = ArchiveRecord()
        error = record.populate(data)
        if error:
            crawl_requests_total.labels(outcome="populate_error").inc()
            self.populate_errors += 1
            self.logger.error(f"ID: {file_id}; Could not populate file record")
            self._report(outcome, error)
            if self._budget_exhausted(self.populate_errors, self.populate_error_threshold):
                self.logger.error("Too many API request errors! (Use --no-die-on-error to suppress)")
                outcome.state = CrawlState.STOPPED_ERROR_BUDGET
            return outcome

        crawl_requests_total.labels(outcome="ok").inc()
        outcome.record = record
        outcome.path = record.path
        self.file_map[file_id] = record.path
        self.logger.info(f"{response.status_code} {response.reason} ID: {file_id:5d}; path: {record.path}")

        if self.store is not None:
            _, error = self.store.add_file_if_missing(record)
            if error:
                self.database_errors += 1
                self._report(outcome, error)
        return outcome

    def _budget_exhausted(self, count, threshold):
        return bool(self.die_on_error) and count > threshold

    def _report(self, outcome, error):
        crawl_errors_total.labels(kind=error.kind).inc()
        self.logger.error(f"ID: {outcome.file_id}; {error}")
        outcome.error = error
        self.last_error = error

    def _fatal(self, outcome, kind, message, raw):
        error = CatalogError(kind=kind, message=message, raw=raw, context="crawler.fetch", level=ErrorLevel.FATAL)
        self._report(outcome, error)
        outcome.state = CrawlState.STOPPED_TRANSPORT
        return outcome

    def _finish(self, outcome, state):
        outcome.state = state
        self.state = state
        self.close()
        return outcome

    def close(self):
        """Close the HTTP session if this crawler created it"""
        if self._owns_session and self.session is not None:
            self.session.close()
            self.session = None

    def iter_outcomes(self):
        """Generator flavour of run(): yields each outcome as it happens"""
        with ACTIVE_CRAWLS.track_inprogress():
            while not self.finished:
                yield self.step()

    def run(self) -> CrawlResult:
        self.logger.info(f"Starting crawl at file ID {self.file_id}")
        outcomes = list(self.iter_outcomes())
        self.logger.info(
            f"Crawl finished ({self.state}) after {self.total_requests} request(s); "
            f"{len(self.file_map)} file(s) mapped"
        )
        return self.result(outcomes)

    def result(self, outcomes=None):
        return CrawlResult(
            state=self.state,
            file_map=dict(self.file_map),
            outcomes=list(outcomes or []),
            total_requests=self.total_requests,
            populate_errors=self.populate_errors,
            parse_errors=self.parse_errors,
            database_errors=self.database_errors,
            last_error=self.last_error,
        )


def format_file_map(file_map):
    """'<id>:<dir><filename>' lines, sorted by numeric ID"""
    return [f"{file_id}:{file_map[file_id]}" for file_id in sorted(file_map, key=int)]


def write_file_map(file_map, stream):
    for line in format_file_map(file_map):
        stream.write(line + "\n")
