"""Authentication utility helpers."""


def extract_bearer_token(request):
    auth_header = str(request.headers.get('Authorization', '') or '')
    if not auth_header.startswith('Bearer '):
        return ''
    return auth_header.split('Bearer ', 1)[1].strip()


def verify_firebase_token(request, auth_module, logger):
    """Return the decoded Firebase ID token, or None when it is missing or invalid."""
    token = extract_bearer_token(request)
    if not token:
        return None
    try:
        decoded = auth_module.verify_id_token(token)
    except Exception as exc:
        if logger is not None:
            logger.info(f"Token verification failed: {exc.__class__.__name__}: {exc}")
        return None
    if not decoded or not decoded.get('uid'):
        return None
    return decoded
