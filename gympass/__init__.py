import logging

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFProtect, CSRFError
from sqlalchemy.exc import SQLAlchemyError

from .config import config
from .errors import GymPassError

# Initialize extensions
db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
csrf = CSRFProtect()

logger = logging.getLogger(__name__)


def create_app(config_name=None, llm_client=None):
    """
    Application factory

    `llm_client` replaces the OpenAI client built from OPENAI_API_KEY; tests
    pass a fake here.
    """
    import os
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])

    configure_logging(app)

    # Initialize extensions with app
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'error': 'يرجى تسجيل الدخول للوصول لهذه الصفحة'}), 401

    # Services get their collaborators here, not at import time
    register_services(app, llm_client)

    # Register blueprints
    from .routes.auth import auth_bp
    from .routes.dashboard import dashboard_bp
    from .routes.members import members_bp
    from .routes.settings import settings_bp
    from .routes.public import public_bp
    from .routes.admin import admin_bp

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(dashboard_bp, url_prefix='/dashboard')
    app.register_blueprint(members_bp, url_prefix='/members')
    app.register_blueprint(settings_bp, url_prefix='/settings')
    app.register_blueprint(public_bp, url_prefix='/public')
    app.register_blueprint(admin_bp, url_prefix='/admin')

    # Admin API authenticates with its own key, not the session cookie
    csrf.exempt(admin_bp)

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_cli_commands(app)

    return app


def configure_logging(app):
    """Configure root logging once per process"""
    logging.basicConfig(
        level=getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def register_services(app, llm_client=None):
    """Build the service objects and hang them on app.extensions"""
    from .services.accounts import AccountService
    from .services.admin import AdminService
    from .services.meal_plans import MealPlanGenerator
    from .services.members import MemberService

    if llm_client is None and app.config.get('OPENAI_API_KEY'):
        from openai import OpenAI
        llm_client = OpenAI(
            api_key=app.config['OPENAI_API_KEY'],
            base_url=app.config.get('OPENAI_BASE_URL') or None
        )

    app.extensions['gympass'] = {
        'accounts': AccountService(db.session),
        'members': MemberService(db.session, app.config['RENEWAL_DEBT_POLICY']),
        'admin': AdminService(db.session),
        'meal_plans': MealPlanGenerator(
            llm_client,
            model=app.config['MEAL_PLAN_MODEL'],
            temperature=app.config['MEAL_PLAN_TEMPERATURE']
        ),
    }


def register_error_handlers(app):
    """Register error handlers"""

    @app.errorhandler(GymPassError)
    def domain_error(error):
        db.session.rollback()
        if error.status_code >= 500:
            logger.error(f"{type(error).__name__}: {error.message}")
        else:
            logger.info(f"{type(error).__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def store_error(error):
        db.session.rollback()
        logger.exception(f"Database error: {error}")
        return jsonify({'success': False, 'error': 'تعذر الوصول إلى قاعدة البيانات. يرجى المحاولة مرة أخرى.'}), 500

    @app.errorhandler(CSRFError)
    def csrf_error(error):
        return jsonify({'success': False, 'error': error.description}), 400

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'success': False, 'error': 'الصفحة غير موجودة'}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({'success': False, 'error': 'الطريقة غير مسموحة'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({'success': False, 'error': 'خطأ داخلي في الخادم'}), 500


def register_cli_commands(app):
    """Register CLI commands"""
    import click

    @app.cli.command('init-db')
    def init_db():
        """Create all tables"""
        from . import models  # noqa: F401
        db.create_all()
        click.echo('Database initialized successfully!')

    @app.cli.command('create-promo-code')
    @click.option('--code', prompt='Code', help='Promo code text')
    @click.option('--type', 'code_type', type=click.Choice(['monthly', '6-months', 'yearly']),
                  default='monthly', show_default=True, help='Subscription it grants')
    @click.option('--max-uses', type=int, default=1, show_default=True, help='How many signups it allows')
    def create_promo_code(code, code_type, max_uses):
        """Create a promo code for gym owner signup"""
        from .errors import ValidationError

        try:
            promo = app.extensions['gympass']['admin'].create_promo_code(code, code_type, max_uses)
        except ValidationError as e:
            raise click.ClickException(e.message)
        click.echo(f'Created promo code: {promo.code} ({promo.type}, {promo.max_uses} uses)')
