from flask import Flask
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from whoowes.config import Config
from whoowes.errors import register_error_handlers
from whoowes.extensions import init_ledger
from whoowes.log_config import configure_logging

jwt = JWTManager()


def create_app(config_class=Config, store=None):
    """
    Application factory.

    Args:
        config_class: Flask config object
        store: optional pre-built LedgerStore (tests); otherwise built from config
    """
    configure_logging(config_class.LOG_LEVEL, json=config_class.LOG_JSON)

    app = Flask(__name__)
    app.config.from_object(config_class)

    # Disable strict slashes to prevent 308 redirects that break CORS preflight
    app.url_map.strict_slashes = False

    CORS(
        app,
        supports_credentials=True,
        resources={r"/*": {"origins": app.config["CORS_ORIGINS"]}}
    )
    jwt.init_app(app)
    init_ledger(app, store=store)
    register_error_handlers(app)

    from whoowes.cards.routes import cards_bp
    from whoowes.merchants.routes import merchants_bp
    from whoowes.transactions.routes import transactions_bp
    from whoowes.settlements.routes import settlements_bp
    from whoowes.health.routes import health_bp

    app.register_blueprint(cards_bp, url_prefix='/cards')
    app.register_blueprint(merchants_bp, url_prefix='/merchants')
    app.register_blueprint(transactions_bp, url_prefix='/transactions')
    app.register_blueprint(settlements_bp, url_prefix='/settlements')
    app.register_blueprint(health_bp, url_prefix='/health')

    return app
