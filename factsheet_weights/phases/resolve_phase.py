"""Resolve phase - ISIN to factsheet URL or direct constituents."""

from factsheet_weights.core.errors import UrlNotAllowedError, UrlNotFoundError, url_not_found
from factsheet_weights.phases.phase_base import PhaseRunner, WorkflowState
from factsheet_weights.pydantic_models import DirectConstituents


class ResolvePhase(PhaseRunner):
    name = "Resolve"

    async def run(self) -> WorkflowState:
        state = self.context.state
        try:
            resolved = await self.context.resolver.resolve(state.isin)
        except UrlNotAllowedError as exc:
            # A mapped URL off the allow-list counts as a failed resolution
            await self.record_attempt("error", str(exc), source_url=exc.url)
            return self.fail(url_not_found(str(exc)))
        except UrlNotFoundError as exc:
            await self.record_attempt("error", str(exc))
            return self.fail(url_not_found(str(exc)))

        state.provider = resolved.provider
        if isinstance(resolved, DirectConstituents):
            state.direct = resolved
            state.source_url = resolved.source_url
            self.logger.milestone(
                f"Direct constituents from {resolved.provider}",
                count=len(resolved.constituents),
                url=resolved.source_url,
            )
            return WorkflowState.DIRECT_COMMIT

        state.source_url = resolved.url
        self.logger.milestone(f"Resolved {resolved.provider} factsheet", url=resolved.url)
        return WorkflowState.FETCH
