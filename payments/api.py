"""Thin client for the tournament Backend API.

Every endpoint answers with an envelope of the form
``{"success": bool, "data": ..., "message": str}``. The client unwraps it and
raises ``BackendError`` for anything that is not a successful envelope.
"""

import json
import logging

import requests

from payments.errors import BackendError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = 'http://localhost:8000/api/v1'
DEFAULT_PROVIDER = 'phonepe'


class BackendClient:
    def __init__(self, base_url=DEFAULT_API_URL, token=None, timeout=None,
                 provider=DEFAULT_PROVIDER, session=None):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout = timeout
        self.provider = provider
        self.http = session or requests.Session()

    @classmethod
    def from_config(cls, config, token=None):
        return cls(
            base_url=config.get('BACKEND_API_URL', DEFAULT_API_URL),
            token=token,
            timeout=config.get('BACKEND_API_TIMEOUT'),
            provider=config.get('PAYMENT_PROVIDER', DEFAULT_PROVIDER),
        )

    def _headers(self):
        headers = {'Accept': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def _request(self, method, path, **kwargs):
        url = f'{self.base_url}{path}'
        try:
            response = self.http.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            logger.warning('%s %s failed: %s', method, path, exc)
            raise BackendError(f'Unable to reach the server: {exc}') from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.ok:
            message = None
            if isinstance(body, dict):
                message = body.get('message')
            raise BackendError(
                message or f'Request failed with status {response.status_code}',
                status_code=response.status_code,
                payload=body,
            )

        if not isinstance(body, dict):
            raise BackendError('Unexpected response from server', response.status_code)

        if body.get('success') is False:
            raise BackendError(
                body.get('message') or 'Request was not successful',
                status_code=response.status_code,
                payload=body,
            )

        return body.get('data')

    # Auth

    def login_organizer(self, email, password):
        data = self._request('POST', '/organizer-auth/login', json={'email': email, 'password': password})
        if not isinstance(data, dict) or not data.get('accessToken'):
            raise BackendError('Login response did not include an access token')
        return data

    # Payments

    def gateway_status(self):
        return self._request('GET', '/payments/status')

    def initiate_payment(self, name, mobile_number, amount, description=None):
        payload = {'name': name, 'mobileNumber': mobile_number, 'amount': amount}
        if description:
            payload['description'] = description
        return self._request('POST', f'/payments/{self.provider}/initiate', json=payload)

    def payment_status(self, transaction_id):
        return self._request('GET', f'/payments/status/{transaction_id}')

    # Tournaments

    def organizer_tournaments(self):
        return self._request('GET', '/tournaments/organizer/tournaments') or []

    def get_tournament(self, tournament_id):
        return self._request('GET', f'/tournaments/{tournament_id}')

    def register_team(self, intent, payment_reference, payment_method, payment_status):
        fields = {
            'teamName': intent.team_name,
            'captainName': intent.captain_name,
            'captainEmail': intent.captain_email,
            'captainPhone': intent.captain_phone,
            'tournamentId': intent.tournament_id,
            'paymentMethod': payment_method,
            'paymentStatus': payment_status,
            'paymentDetails': payment_reference,
            'members': json.dumps(intent.members_payload()),
        }
        # (None, value) parts make requests send multipart/form-data without files.
        files = {key: (None, value) for key, value in fields.items()}
        return self._request('POST', '/tournaments/register-team/organizer', files=files)
