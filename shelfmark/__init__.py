import click
from flask import Flask

from shelfmark.api import api_bp
from shelfmark.auth import auth_bp
from shelfmark.config import Config
from shelfmark.extensions import db, login_manager, migrate
from shelfmark.jobs.scheduler import start_scheduler
from shelfmark.web import web_bp


def create_app(config_object=Config):
    app = Flask(__name__, template_folder="../templates")
    app.config.from_object(config_object)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(web_bp)
    app.register_blueprint(api_bp)

    @app.cli.command("init-db")
    def init_db_command():
        db.create_all()
        print("Initialized ShelfMark database.")

    @app.cli.command("create-user")
    @click.argument("username")
    @click.password_option()
    def create_user_command(username, password):
        from shelfmark.models import User

        if User.query.filter_by(username=username).first():
            raise click.ClickException(f"user {username!r} already exists")
        user = User(username=username, is_active=True)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        print(f"Created user {username}.")

    @app.context_processor
    def inject_globals():
        return {"app_name": "ShelfMark"}

    with app.app_context():
        db.create_all()

    start_scheduler(app)
    return app
