from flask import Blueprint, render_template, request, redirect, url_for, flash, g, session, current_app
import logging

from sqlalchemy.exc import SQLAlchemyError

from models import db, PaymentAttempt
from blueprints.auth import backend_client, require_organizer
from blueprints.payments import gateway_status
from payments.errors import BackendError, PaymentInitiationError, ValidationError
from payments.initiator import PaymentInitiator
from payments.intent_store import RegistrationIntentStore
from payments.records import TeamForm
from payments.resolver import CallbackResolver, TRANSACTION_ID_PARAMS

organizer_bp = Blueprint('organizer', __name__, url_prefix='/organizer')
logger = logging.getLogger(__name__)

REGISTRATION_SUCCESS_MESSAGE = 'Team registered successfully!'


def load_tournaments(client) -> list[dict]:
    """Tournaments the organizer can register teams into."""
    try:
        tournaments = client.organizer_tournaments()
    except BackendError as exc:
        flash(exc.message or 'Failed to fetch tournaments', 'error')
        return []
    return [t for t in tournaments if isinstance(t, dict) and t.get('_id')]


def find_tournament(tournaments, tournament_id):
    for tournament in tournaments:
        if str(tournament.get('_id')) == str(tournament_id):
            return tournament
    return None


@organizer_bp.route('/register-team', methods=['GET', 'POST'])
@require_organizer
def register_team():
    """Team registration form; submitting it starts the entry fee payment."""
    client = backend_client()
    store = RegistrationIntentStore(session)
    tournaments = load_tournaments(client)

    if request.method == 'POST':
        team_form = TeamForm.from_form(request.form)
        selected_id = request.form.get('tournament_id', '').strip()
    else:
        team_form = TeamForm()
        selected_id = request.args.get('tournament_id', '').strip()
        if not selected_id and tournaments:
            selected_id = str(tournaments[0]['_id'])

    selected = find_tournament(tournaments, selected_id)
    entry_fee = (selected or {}).get('entryFee') or 0

    # Rows as rendered, blank ones included, so remove_member_<n> matches what was shown.
    if request.method == 'POST':
        member_rows = TeamForm.member_rows(request.form)
        action = request.form.get('action', '')
    else:
        member_rows = []
        action = ''

    if action == 'add_member':
        member_rows.append(None)
    elif action.startswith('remove_member_'):
        index = action[len('remove_member_'):]
        if index.isdigit() and 0 < int(index) <= len(member_rows):
            member_rows.pop(int(index) - 1)
    elif request.method == 'POST':
        initiator = PaymentInitiator(client, store)
        try:
            payment = initiator.initiate(team_form, selected_id if selected else '', entry_fee)
        except ValidationError as exc:
            for error in exc.errors:
                flash(error, 'error')
        except PaymentInitiationError as exc:
            flash(exc.message or 'Failed to process payment', 'error')
        else:
            try:
                PaymentAttempt.record_initiated(
                    transaction_id=payment.transaction_id,
                    amount=entry_fee,
                    payer_name=team_form.captain_name,
                    tournament_id=selected_id,
                    team_name=team_form.name,
                    organizer_email=g.organizer.get('email'),
                )
            except SQLAlchemyError:
                db.session.rollback()
                logger.exception('Could not record initiation of payment %s', payment.transaction_id)
            return redirect(payment.payment_url)

    return render_template(
        'organizer/register_team.html',
        tournaments=tournaments,
        selected_id=selected_id,
        entry_fee=entry_fee,
        team_form=team_form,
        member_rows=member_rows or [None],
        pending=store.load(),
        gateway=gateway_status(client),
    )


@organizer_bp.route('/payment-status', methods=['GET', 'POST'])
def payment_status():
    """Where the payment gateway sends the browser back after checkout."""
    store = RegistrationIntentStore(session)
    params = request.values.to_dict()

    if not any(params.get(name) for name in TRANSACTION_ID_PARAMS):
        stored_id = store.current_transaction_id()
        if stored_id:
            params['merchantTransactionId'] = stored_id
            return redirect(url_for('organizer.payment_status', **params))

    resolver = CallbackResolver(
        backend_client(),
        store,
        treat_unknown_as_success=current_app.config.get('TREAT_UNVERIFIED_PAYMENT_AS_SUCCESS', True),
    )
    state = resolver.resolve(params)

    try:
        PaymentAttempt.record_resolution(state)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Could not record resolution of payment %s', state.outcome.transaction_id)

    if state.kind == 'succeeded' and state.registration_attempted:
        flash(REGISTRATION_SUCCESS_MESSAGE, 'success')

    return render_template('organizer/payment_status.html', state=state)


@organizer_bp.route('/payments')
@require_organizer
def payment_history():
    """Payments opened by this organizer, newest first."""
    email = g.organizer.get('email')
    attempts = (
        PaymentAttempt.query.filter_by(organizer_email=email)
        .order_by(PaymentAttempt.created_at.desc())
        .all()
    )
    return render_template(
        'organizer/payments.html',
        attempts=attempts,
        needs_support=[attempt for attempt in attempts if attempt.needs_support],
    )
