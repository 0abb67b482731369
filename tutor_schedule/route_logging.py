from __future__ import annotations

import logging
import time

from fastapi.routing import APIRoute
from starlette.requests import Request

from tutor_schedule.config import settings
from tutor_schedule.request_context import endpoint_scope


logger = logging.getLogger('tutor_schedule.requests')


class EndpointNameRoute(APIRoute):
    """Tags each request with its route template and logs slow ones.

    The label ("GET /api/availability/day") is what slow-query logging in
    ``tutor_schedule.db`` reports, so queries can be traced to an endpoint.
    """

    def get_route_handler(self):
        original_handler = super().get_route_handler()

        async def custom_handler(request: Request):
            with endpoint_scope(f'{request.method} {self.path}') as label:
                started = time.perf_counter()
                response = await original_handler(request)
                duration_ms = (time.perf_counter() - started) * 1000.0
                if duration_ms >= settings.metrics_slow_ms:
                    logger.warning(
                        'slow_request endpoint="%s" status=%s duration_ms=%.2f',
                        label,
                        response.status_code,
                        duration_ms,
                    )
                return response

        return custom_handler
