import asyncio
from unittest.mock import MagicMock

from lawbook.routes import payment_routes
from lawbook.services.payment_callback import PaymentCallbackHandler


class _FakeRequest:
    def __init__(self, *, method: str = 'POST', content_type: str = '', query_params=None, form_data=None, body=b''):
        self.method = method
        self.headers = {'content-type': content_type} if content_type else {}
        self.query_params = query_params or {}
        self._form_data = form_data or {}
        self._body = body

    async def form(self):
        return self._form_data

    async def body(self):
        return self._body


class _BrokenFormRequest(_FakeRequest):
    async def form(self):
        raise ValueError('malformed multipart body')


def _call(request: _FakeRequest, handler) -> tuple[int, str, str]:
    response = asyncio.run(payment_routes.payment_callback(request, handler=handler))
    return response.status_code, response.body.decode('utf-8'), response.media_type


def test_get_check_answers_success(gateway_settings) -> None:
    engine = MagicMock()

    result = _call(_FakeRequest(method='GET'), PaymentCallbackHandler(gateway_settings, engine))

    assert result == (200, 'SUCCESS', 'text/plain')
    engine.confirm.assert_not_called()


def test_form_post_merges_query_parameters(gateway_settings) -> None:
    engine = MagicMock()
    request = _FakeRequest(
        content_type='application/x-www-form-urlencoded',
        query_params={'MNT_ID': '74730556'},
        form_data={'MNT_TRANSACTION_ID': 'appt-1|1700000000000', 'MNT_OPERATION_ID': 'op-7'},
    )

    result = _call(request, PaymentCallbackHandler(gateway_settings, engine))

    assert result == (200, 'SUCCESS', 'text/plain')
    engine.confirm.assert_called_once_with('appt-1', 'op-7')


def test_raw_body_is_parsed_as_query_string(gateway_settings) -> None:
    engine = MagicMock()
    request = _FakeRequest(
        content_type='text/plain',
        body=b'MNT_ID=74730556&MNT_TRANSACTION_ID=appt-2%7C1&MNT_OPERATION_ID=op-8',
    )

    result = _call(request, PaymentCallbackHandler(gateway_settings, engine))

    assert result == (200, 'SUCCESS', 'text/plain')
    engine.confirm.assert_called_once_with('appt-2', 'op-8')


def test_rejected_callback_is_still_http_200(gateway_settings) -> None:
    request = _FakeRequest(method='GET', query_params={'MNT_ID': 'wrong', 'MNT_TRANSACTION_ID': 'appt-1|1'})

    result = _call(request, PaymentCallbackHandler(gateway_settings, MagicMock()))

    assert result == (200, 'FAIL', 'text/plain')


def test_unreadable_body_answers_fail(gateway_settings) -> None:
    request = _BrokenFormRequest(content_type='multipart/form-data; boundary=x')

    result = _call(request, PaymentCallbackHandler(gateway_settings, MagicMock()))

    assert result == (200, 'FAIL', 'text/plain')
