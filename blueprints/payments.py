"""Standalone checkout and payment gateway availability."""

from flask import Blueprint, render_template, request, redirect, flash, g, session, jsonify
import logging

from sqlalchemy.exc import SQLAlchemyError

from models import db, PaymentAttempt
from blueprints.auth import backend_client, require_organizer
from payments.errors import BackendError, PaymentInitiationError, ValidationError
from payments.initiator import PaymentInitiator
from payments.intent_store import RegistrationIntentStore

payments_bp = Blueprint('payments', __name__, url_prefix='/payments')
logger = logging.getLogger(__name__)


def gateway_status(client) -> dict:
    """Ask the backend whether the payment provider is taking payments."""
    try:
        data = client.gateway_status() or {}
    except BackendError as exc:
        logger.warning('Payment gateway status check failed: %s', exc.message)
        return {'active': False, 'message': 'Unable to connect to payment gateway'}

    provider = data.get('provider') or 'Payment'
    if data.get('status', 'active') != 'active':
        return {'active': False, 'message': 'Payment gateway is currently offline'}
    return {'active': True, 'message': f'{provider} gateway is active'}


@payments_bp.route('/gateway-status')
def gateway_status_view():
    return jsonify(gateway_status(backend_client()))


@payments_bp.route('/checkout', methods=['GET', 'POST'])
@require_organizer
def checkout():
    """Collect a one-off payment with no team registration attached."""
    form_data = {
        'name': request.form.get('name', ''),
        'mobile_number': request.form.get('mobile_number', ''),
        'amount': request.form.get('amount', ''),
    }
    client = backend_client()

    if request.method == 'POST':
        initiator = PaymentInitiator(client, RegistrationIntentStore(session))
        try:
            payment = initiator.initiate_checkout(**form_data)
        except ValidationError as exc:
            for error in exc.errors:
                flash(error, 'error')
        except PaymentInitiationError as exc:
            flash(exc.message or 'Failed to process payment', 'error')
        else:
            try:
                PaymentAttempt.record_initiated(
                    transaction_id=payment.transaction_id,
                    amount=form_data['amount'],
                    payer_name=form_data['name'].strip(),
                    organizer_email=g.organizer.get('email'),
                )
            except SQLAlchemyError:
                db.session.rollback()
                logger.exception('Could not record initiation of payment %s', payment.transaction_id)
            return redirect(payment.payment_url)

    return render_template(
        'payments/checkout.html',
        form=form_data,
        gateway=gateway_status(client),
    )
