from flask import Flask, jsonify

from .config import load_config
from .extensions import init_extensions, init_sentry
from .logging_config import configure_logging


def create_app():
    """App factory entrypoint.

    Clients and limiter state live in `cognify.runtime` and are shared by every app built here.
    """
    config = load_config()
    configure_logging(config.log_level)

    from . import runtime
    from .blueprints import payments_bp, study_bp, upload_bp

    app = Flask(__name__)
    app.secret_key = config.flask_secret_key or 'dev-only-secret'
    app.config['MAX_CONTENT_LENGTH'] = runtime.MAX_REQUEST_BYTES

    init_sentry(config)
    init_extensions(app, runtime.MAX_UPLOAD_BYTES)

    app.register_blueprint(upload_bp)
    app.register_blueprint(study_bp)
    app.register_blueprint(payments_bp)

    @app.route('/healthz', methods=['GET'])
    def healthz():
        return jsonify({'status': 'ok'})

    return app
