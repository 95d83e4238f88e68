"""Fetch phase - downloads the factsheet.

A download that fails after all retries writes a negative cache entry with
the short TTL. An allow-list violation is logged but never cached.
"""

from factsheet_weights.core.errors import FetchError, UrlNotAllowedError, fetch_failed, url_not_allowed
from factsheet_weights.phases.phase_base import PhaseRunner, WorkflowState


class FetchPhase(PhaseRunner):
    name = "Fetch"

    async def run(self) -> WorkflowState:
        state = self.context.state
        url = state.source_url
        try:
            state.data = await self.context.fetcher.download(url)
        except UrlNotAllowedError as exc:
            await self.record_attempt("error", str(exc), source_url=url)
            return self.fail(url_not_allowed(url))
        except FetchError as exc:
            await self.record_attempt("error", str(exc), http_status=exc.http_status, source_url=url)
            await self.write_cache(url, [], None, success=False)
            return self.fail(fetch_failed(str(exc), http_status=exc.http_status))

        self.log(f"{len(state.data)} bytes", "debug", url=url)
        return WorkflowState.EXTRACT
