import os
import logging
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_restx import Api
from config import DevConfig, ProdConfig

db = SQLAlchemy()
migrate = Migrate()
bcrypt = Bcrypt()
cors = CORS()
limiter = Limiter(key_func=get_remote_address)

def create_app(config_object=None):
    app = Flask(__name__)
    if config_object is None:
        env = os.getenv("FLASK_ENV", "development")
        config_object = ProdConfig if env == "production" else DevConfig
    app.config.from_object(config_object)

    level = app.config.get("LOG_LEVEL", "INFO")
    app.logger.setLevel(level)
    logging.getLogger(__name__).setLevel(level)

    # Inicializa extensões
    db.init_app(app)
    migrate.init_app(app, db)
    bcrypt.init_app(app)
    cors.init_app(app, resources={r"/api/*": {"origins": "*"}})
    limiter.init_app(app)

    # Configurar RESTX (Swagger)
    api = Api(
        app,
        version="1.0",
        title="MedSys",
        description="Pacientes, receitas, evoluções e estoque de medicamentos do consultório",
        doc="/api/docs",
    )

    # Registrar Namespaces
    from .auth import auth_ns
    from .patients import patients_ns
    from .prescriptions import prescriptions_ns
    from .medications import medications_ns
    from .evolutions import evolutions_ns
    from .views import views_ns
    from .preferences import preferences_ns

    api.add_namespace(auth_ns, path="/api/auth")
    api.add_namespace(patients_ns, path="/api/patients")
    api.add_namespace(prescriptions_ns, path="/api/prescriptions")
    api.add_namespace(medications_ns, path="/api/medications")
    api.add_namespace(evolutions_ns, path="/api/evolutions")
    api.add_namespace(views_ns, path="/api")
    api.add_namespace(preferences_ns, path="/api/preferences")

    return app
