import logging
from urllib.parse import parse_qsl

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from lawbook.routes.common import get_callback_handler
from lawbook.services.payment_callback import FAIL, PaymentCallbackHandler

router = APIRouter(tags=['payments'])

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ('application/x-www-form-urlencoded', 'multipart/form-data')


async def collect_callback_params(request: Request) -> dict[str, str]:
    """Flatten query parameters and a POST body into one mapping.

    Body fields win over query parameters with the same name.
    """
    params = {key: str(value) for key, value in request.query_params.items()}
    if request.method != 'POST':
        return params

    content_type = request.headers.get('content-type', '')
    if content_type.startswith(FORM_CONTENT_TYPES):
        form_data = await request.form()
        params.update({key: str(value) for key, value in form_data.items()})
    else:
        body = (await request.body()).decode('utf-8', errors='replace')
        params.update(dict(parse_qsl(body, keep_blank_values=True)))
    return params


@router.api_route('/payment-callback', methods=['GET', 'POST'], response_class=PlainTextResponse)
async def payment_callback(
    request: Request,
    handler: PaymentCallbackHandler = Depends(get_callback_handler),
):
    try:
        params = await collect_callback_params(request)
    except Exception:
        logger.exception('Could not read payment callback parameters')
        return PlainTextResponse(FAIL, status_code=200)

    logger.info('Payment callback received: %s %s', request.method, sorted(params))
    return PlainTextResponse(handler.handle(params), status_code=200)
