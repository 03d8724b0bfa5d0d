from flask import Blueprint, request

payments_bp = Blueprint('payments_api', __name__)


@payments_bp.route('/api/stripe/checkout', methods=['POST'])
def create_checkout_session():
    from cognify import runtime
    from cognify.services import payments_api_service

    return payments_api_service.create_checkout_session(runtime, request)


@payments_bp.route('/api/stripe/portal', methods=['POST'])
def create_portal_session():
    from cognify import runtime
    from cognify.services import payments_api_service

    return payments_api_service.create_portal_session(runtime, request)


@payments_bp.route('/api/stripe/webhook', methods=['POST'])
def stripe_webhook():
    from cognify import runtime
    from cognify.services import payments_api_service

    return payments_api_service.stripe_webhook(runtime, request)


@payments_bp.route('/api/billing', methods=['GET'])
def get_billing_overview():
    from cognify import runtime
    from cognify.services import payments_api_service

    return payments_api_service.get_billing_overview(runtime, request)
