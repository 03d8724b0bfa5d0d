"""Business logic handlers for checkout, billing portal, billing overview and Stripe webhooks."""

from datetime import datetime, timezone

from cognify.config import BILLING_PERIODS

STATUS_FREE = 'free'
STATUS_ACTIVE = 'active'
STATUS_PAST_DUE = 'past_due'
STATUS_LIFETIME = 'lifetime'
PRO_STATUSES = {STATUS_ACTIVE, STATUS_LIFETIME}


def map_subscription_status(status):
    if status in {'active', 'trialing'}:
        return STATUS_ACTIVE
    if status == 'past_due':
        return STATUS_PAST_DUE
    return STATUS_FREE


def timestamp_to_iso(value):
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).isoformat()


def stripe_object_to_dict(stripe_object):
    """Return plain nested dicts for a Stripe object; newer SDK objects no longer subclass dict."""
    for converter_name in ('to_dict', 'to_dict_recursive'):
        converter = getattr(stripe_object, converter_name, None)
        if callable(converter):
            return converter()
    return stripe_object


def resolve_period_end(subscription):
    """Read current_period_end from the subscription, or from its first item on newer API versions."""
    period_end = subscription.get('current_period_end')
    if period_end:
        return period_end
    items = (subscription.get('items') or {}).get('data') or []
    if items:
        return items[0].get('current_period_end')
    return None


def resolve_invoice_subscription_id(invoice):
    subscription_id = invoice.get('subscription')
    if subscription_id:
        return subscription_id if isinstance(subscription_id, str) else subscription_id.get('id')
    parent = invoice.get('parent') or {}
    details = parent.get('subscription_details') or {}
    return details.get('subscription')


def is_portal_available(profile):
    return bool(profile.get('stripe_customer_id')) and profile.get('subscription_status') != STATUS_LIFETIME


def get_price_id(app_ctx, period):
    price_id = app_ctx.STRIPE_PRICES.get(period, '')
    if not price_id:
        raise ValueError(f"Price ID for {period} plan is not configured for {app_ctx.STRIPE_MODE} mode")
    return price_id


def get_or_create_customer_id(app_ctx, uid, email, profile):
    customer_id = profile.get('stripe_customer_id')
    if customer_id:
        return customer_id
    customer = app_ctx.stripe.Customer.create(
        email=email or None,
        name=profile.get('full_name') or None,
        metadata={'firebase_uid': uid},
    )
    app_ctx.profiles_repo.update_profile(app_ctx.db, uid, {'stripe_customer_id': customer.id})
    return customer.id


def create_checkout_session(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401

    uid = decoded_token['uid']
    email = decoded_token.get('email', '')
    allowed_checkout, retry_after = app_ctx.check_rate_limit(
        key=f"checkout:{app_ctx.normalize_rate_limit_key_part(uid, fallback='anon_uid')}",
        limit=app_ctx.CHECKOUT_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=app_ctx.CHECKOUT_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed_checkout:
        return app_ctx.build_rate_limited_response(
            'Too many checkout attempts. Please wait before starting another checkout.',
            retry_after,
        )

    data = request.get_json(silent=True) or {}
    period = data.get('period', 'monthly') if isinstance(data, dict) else 'monthly'
    if period not in BILLING_PERIODS:
        return app_ctx.jsonify({'error': 'Invalid billing period'}), 400
    if app_ctx.db is None:
        return app_ctx.jsonify({'error': 'Billing is not configured'}), 503

    try:
        profile = app_ctx.profiles_repo.get_profile(app_ctx.db, uid)
        customer_id = get_or_create_customer_id(app_ctx, uid, email, profile)
        is_lifetime = period == STATUS_LIFETIME
        session_config = {
            'customer': customer_id,
            'payment_method_types': ['card'],
            'line_items': [{'price': get_price_id(app_ctx, period), 'quantity': 1}],
            'mode': 'payment' if is_lifetime else 'subscription',
            'success_url': f"{app_ctx.APP_URL}/dashboard/billing?success=true",
            'cancel_url': f"{app_ctx.APP_URL}/dashboard/billing?canceled=true",
            'allow_promotion_codes': True,
            'metadata': {'firebase_uid': uid, 'plan_type': period},
        }
        if not is_lifetime:
            session_config['subscription_data'] = {'metadata': {'firebase_uid': uid}}
        checkout_session = app_ctx.stripe.checkout.Session.create(**session_config)
        return app_ctx.jsonify({'url': checkout_session.url})
    except Exception as e:
        app_ctx.logger.error(f"Stripe checkout error for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Failed to create checkout session'}), 500


def create_portal_session(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.jsonify({'error': 'Billing is not configured'}), 503

    uid = decoded_token['uid']
    try:
        profile = app_ctx.profiles_repo.get_profile(app_ctx.db, uid)
        if not profile.get('stripe_customer_id'):
            return app_ctx.jsonify({'error': 'No billing account found. Please subscribe first.'}), 400
        if profile.get('subscription_status') == STATUS_LIFETIME:
            return app_ctx.jsonify({'error': 'Lifetime plans have no billing portal.'}), 400
        session = app_ctx.stripe.billing_portal.Session.create(
            customer=profile['stripe_customer_id'],
            return_url=f"{app_ctx.APP_URL}/dashboard/billing",
        )
        return app_ctx.jsonify({'url': session.url})
    except Exception as e:
        app_ctx.logger.error(f"Stripe portal error for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Failed to create portal session'}), 500


def get_billing_overview(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.jsonify({'error': 'Billing is not configured'}), 503

    uid = decoded_token['uid']
    try:
        profile = app_ctx.profiles_repo.get_profile(app_ctx.db, uid)
        now = datetime.now(timezone.utc)
        month_start_ts = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0).timestamp()
        documents_this_month = app_ctx.documents_repo.count_documents_since(app_ctx.db, uid, month_start_ts)
    except Exception as e:
        app_ctx.logger.error(f"Error loading billing overview for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load billing details'}), 500

    status = profile.get('subscription_status') or STATUS_FREE
    return app_ctx.jsonify({
        'subscription_status': status,
        'current_period_end': None if status == STATUS_LIFETIME else profile.get('current_period_end'),
        'plan': 'pro' if status in PRO_STATUSES else 'free',
        'is_lifetime': status == STATUS_LIFETIME,
        'portal_available': is_portal_available(profile),
        'documents_this_month': documents_this_month,
    })


# --- Webhook event handlers ---
def resolve_event_uid(app_ctx, stripe_object):
    metadata = stripe_object.get('metadata') or {}
    uid = metadata.get('firebase_uid')
    if uid:
        return uid
    return app_ctx.profiles_repo.find_uid_by_customer_id(app_ctx.db, stripe_object.get('customer'))


def handle_checkout_completed(app_ctx, session):
    uid = resolve_event_uid(app_ctx, session)
    if not uid:
        app_ctx.logger.error(f"No user found for checkout session {session.get('id', '')}")
        return
    plan_type = (session.get('metadata') or {}).get('plan_type')

    if plan_type == STATUS_LIFETIME or session.get('mode') == 'payment':
        app_ctx.profiles_repo.update_profile(app_ctx.db, uid, {
            'subscription_status': STATUS_LIFETIME,
            'subscription_id': None,
            'current_period_end': None,
        })
        app_ctx.logger.info(f"Lifetime access activated for user {uid}")
        return

    subscription_id = session.get('subscription')
    if not subscription_id:
        app_ctx.logger.error(f"No subscription ID found for checkout session {session.get('id', '')}")
        return
    subscription = stripe_object_to_dict(app_ctx.stripe.Subscription.retrieve(subscription_id))
    app_ctx.profiles_repo.update_profile(app_ctx.db, uid, {
        'subscription_status': STATUS_ACTIVE,
        'subscription_id': subscription_id,
        'current_period_end': timestamp_to_iso(resolve_period_end(subscription)),
    })
    app_ctx.logger.info(f"Subscription activated for user {uid}")


def _is_lifetime_user(app_ctx, uid):
    return app_ctx.profiles_repo.get_profile(app_ctx.db, uid).get('subscription_status') == STATUS_LIFETIME


def handle_subscription_updated(app_ctx, subscription):
    uid = resolve_event_uid(app_ctx, subscription)
    if not uid:
        app_ctx.logger.error('No user found for subscription update')
        return
    if _is_lifetime_user(app_ctx, uid):
        app_ctx.logger.info(f"Ignoring subscription update for lifetime user {uid}")
        return
    status = map_subscription_status(subscription.get('status'))
    app_ctx.profiles_repo.update_profile(app_ctx.db, uid, {
        'subscription_status': status,
        'current_period_end': timestamp_to_iso(resolve_period_end(subscription)),
    })
    app_ctx.logger.info(f"Subscription updated for user {uid}: {status}")


def handle_subscription_deleted(app_ctx, subscription):
    uid = resolve_event_uid(app_ctx, subscription)
    if not uid:
        app_ctx.logger.error('No user found for subscription deletion')
        return
    if _is_lifetime_user(app_ctx, uid):
        app_ctx.logger.info(f"Ignoring subscription deletion for lifetime user {uid}")
        return
    app_ctx.profiles_repo.update_profile(app_ctx.db, uid, {
        'subscription_status': STATUS_FREE,
        'subscription_id': None,
        'current_period_end': None,
    })
    app_ctx.logger.info(f"Subscription canceled for user {uid}")


def handle_invoice_paid(app_ctx, invoice):
    uid = resolve_event_uid(app_ctx, invoice)
    if not uid:
        return
    if _is_lifetime_user(app_ctx, uid):
        app_ctx.logger.info(f"Ignoring paid invoice for lifetime user {uid}")
        return
    subscription_id = resolve_invoice_subscription_id(invoice)
    if subscription_id:
        subscription = stripe_object_to_dict(app_ctx.stripe.Subscription.retrieve(subscription_id))
        app_ctx.profiles_repo.update_profile(app_ctx.db, uid, {
            'subscription_status': STATUS_ACTIVE,
            'current_period_end': timestamp_to_iso(resolve_period_end(subscription)),
        })
    app_ctx.logger.info(f"Invoice paid for user {uid}")


def handle_payment_failed(app_ctx, invoice):
    uid = resolve_event_uid(app_ctx, invoice)
    if not uid:
        return
    if _is_lifetime_user(app_ctx, uid):
        app_ctx.logger.info(f"Ignoring failed invoice for lifetime user {uid}")
        return
    app_ctx.profiles_repo.update_profile(app_ctx.db, uid, {'subscription_status': STATUS_PAST_DUE})
    app_ctx.logger.info(f"Payment failed for user {uid}")


WEBHOOK_HANDLERS = {
    'checkout.session.completed': handle_checkout_completed,
    'customer.subscription.updated': handle_subscription_updated,
    'customer.subscription.deleted': handle_subscription_deleted,
    'invoice.paid': handle_invoice_paid,
    'invoice.payment_failed': handle_payment_failed,
}


def stripe_webhook(app_ctx, request):
    if not app_ctx.STRIPE_WEBHOOK_SECRET:
        app_ctx.logger.warning('⚠️ Stripe webhook rejected: webhook secret is not configured')
        return app_ctx.jsonify({'error': 'Webhook not configured'}), 500

    payload = request.get_data()
    sig_header = request.headers.get('Stripe-Signature', '')
    if not sig_header:
        return app_ctx.jsonify({'error': 'No signature'}), 400

    try:
        event = app_ctx.stripe.Webhook.construct_event(payload, sig_header, app_ctx.STRIPE_WEBHOOK_SECRET)
    except ValueError:
        app_ctx.logger.warning('Stripe webhook: Invalid payload')
        return app_ctx.jsonify({'error': 'Invalid payload'}), 400
    except app_ctx.stripe.SignatureVerificationError as e:
        app_ctx.logger.warning(f"Stripe webhook signature verification failed: {e}")
        return app_ctx.jsonify({'error': 'Invalid signature'}), 400

    event = stripe_object_to_dict(event)
    event_type = event.get('type') or ''
    handler = WEBHOOK_HANDLERS.get(event_type)
    if handler is None:
        app_ctx.logger.info(f"Unhandled Stripe event type: {event_type}")
        return app_ctx.jsonify({'received': True})

    try:
        handler(app_ctx, event['data']['object'])
    except Exception as e:
        app_ctx.logger.error(f"Stripe webhook handler error for {event_type}: {e}")
        app_ctx.capture_exception(e)
        return app_ctx.jsonify({'error': 'Webhook handler failed'}), 500
    return app_ctx.jsonify({'received': True})
