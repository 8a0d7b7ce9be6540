import pytest
from app import create_app
from models import db
from payments.errors import BackendError
from payments.intent_store import RegistrationIntentStore
from payments.records import RegistrationIntent, TeamForm, TeamMember


class FakeBackend:
    """Stands in for BackendClient; records every call in order."""

    def __init__(self):
        self.calls = []
        self.errors = {}
        self.tokens = []
        self.login_response = {
            'accessToken': 'token-123',
            'organizer': {'_id': 'org-1', 'name': 'Olivia Organizer', 'email': 'olivia@test.com'},
        }
        self.gateway_response = {'status': 'active', 'provider': 'PhonePay Sandbox'}
        self.initiate_response = {'transactionId': 'tx1', 'paymentUrl': 'https://gateway.test/pay/tx1'}
        self.status_response = {'status': 'SUCCESS', 'merchantTransactionId': 'tx1', 'amount': 500}
        self.register_response = {'_id': 'team-1', 'name': 'Net Ninjas'}
        self.tournament_response = {'_id': 'tour-1', 'title': 'Winter Cup'}
        self.tournaments_response = [
            {'_id': 'tour-1', 'title': 'Winter Cup', 'entryFee': 500, 'startDate': '2026-12-01T00:00:00.000Z'},
            {'_id': 'tour-2', 'title': 'Spring Open', 'entryFee': 750, 'startDate': '2027-03-01T00:00:00.000Z'},
        ]

    def _call(self, _method, *args, **kwargs):
        self.calls.append((_method, args, kwargs))
        if _method in self.errors:
            raise self.errors[_method]

    def calls_to(self, name):
        return [call for call in self.calls if call[0] == name]

    def fail(self, name, message='Service unavailable', status_code=503):
        self.errors[name] = BackendError(message, status_code=status_code)

    def login_organizer(self, email, password):
        self._call('login_organizer', email, password)
        return self.login_response

    def gateway_status(self):
        self._call('gateway_status')
        return self.gateway_response

    def initiate_payment(self, name, mobile_number, amount, description=None):
        self._call('initiate_payment', name=name, mobile_number=mobile_number,
                   amount=amount, description=description)
        return self.initiate_response

    def payment_status(self, transaction_id):
        self._call('payment_status', transaction_id)
        return self.status_response

    def organizer_tournaments(self):
        self._call('organizer_tournaments')
        return self.tournaments_response

    def get_tournament(self, tournament_id):
        self._call('get_tournament', tournament_id)
        return self.tournament_response

    def register_team(self, intent, payment_reference, payment_method, payment_status):
        self._call('register_team', intent, payment_reference=payment_reference,
                   payment_method=payment_method, payment_status=payment_status)
        return self.register_response


@pytest.fixture
def backend():
    """Fake Backend API shared by the app and direct workflow tests"""
    return FakeBackend()


@pytest.fixture
def flask_app(backend):
    """Create test application with in-memory SQLite database"""
    def factory(token):
        backend.tokens.append(token)
        return backend

    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_ENGINE_OPTIONS': {},
        'SECRET_KEY': 'test-secret-key',
        'BACKEND_CLIENT_FACTORY': factory,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(flask_app):
    """Test client"""
    return flask_app.test_client()


@pytest.fixture
def authenticated_organizer(client):
    """Client with an organizer already signed in"""
    with client.session_transaction() as sess:
        sess['api_token'] = 'token-123'
        sess['organizer'] = {'id': 'org-1', 'name': 'Olivia Organizer', 'email': 'olivia@test.com'}
    return client


@pytest.fixture
def store():
    """Intent store over a plain dict instead of a Flask session"""
    return RegistrationIntentStore({})


@pytest.fixture
def team_form():
    return TeamForm(
        name='Net Ninjas',
        captain_name='Asha Rao',
        captain_email='asha@test.com',
        captain_phone='9876543210',
        members=[
            TeamMember(name='Ravi Kumar', email='ravi@test.com', phone='9123456780'),
            TeamMember(name='Meera Iyer', email='meera@test.com'),
        ],
    )


@pytest.fixture
def intent(team_form):
    return RegistrationIntent.from_form(team_form, 'tour-1', transaction_id='tx1')


@pytest.fixture
def team_form_data():
    """Registration form as posted by the browser"""
    return {
        'tournament_id': 'tour-1',
        'name': 'Net Ninjas',
        'captain_name': 'Asha Rao',
        'captain_email': 'asha@test.com',
        'captain_phone': '9876543210',
        'member_1_name': 'Ravi Kumar',
        'member_1_email': 'ravi@test.com',
        'member_1_phone': '9123456780',
        'member_2_name': 'Meera Iyer',
        'member_2_email': 'meera@test.com',
        'member_2_phone': '',
    }
