import datetime
import jwt
from flask import request, current_app
from flask_restx import Namespace, fields, Resource
from .models import Doctor
from . import db, bcrypt, limiter
from functools import wraps

auth_ns = Namespace("auth", description="Autenticação e registro")

register_model = auth_ns.model("Register", {
    "name": fields.String(required=True, description="Nome do médico"),
    "email": fields.String(required=True, description="E-mail válido"),
    "password": fields.String(required=True, description="Senha com mínimo de 6 caracteres"),
    "crm": fields.String(description="Número do CRM (opcional)"),
    "specialization": fields.String(description="Especialização (opcional)")
})

login_model = auth_ns.model("Login", {
    "email": fields.String(required=True, description="E-mail cadastrado"),
    "password": fields.String(required=True, description="Senha")
})


def doctor_payload(doctor):
    return {
        "id": doctor.id,
        "name": doctor.name,
        "email": doctor.email,
        "crm": doctor.crm,
        "specialization": doctor.specialization
    }


def token_required(f):
    """Decorator para rotas protegidas, verificando JWT."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        token = request.headers.get("x-access-token")
        if not token:
            return {"message": "Token está faltando!"}, 401
        try:
            data = jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=["HS256"])
            current_doctor = db.session.get(Doctor, data["id"])
            if not current_doctor:
                return {"message": "Token inválido!"}, 401
        except jwt.PyJWTError as e:
            return {"message": "Token inválido!", "error": str(e)}, 401
        return f(current_doctor, *args, **kwargs)
    return wrapper


@auth_ns.route("/register")
class Register(Resource):
    @auth_ns.expect(register_model, validate=True)
    def post(self):
        data = request.get_json()
        if not data["name"].strip():
            return {"message": "Por favor, informe seu nome completo."}, 400
        if len(data["password"]) < 6:
            return {"message": "A senha deve ter no mínimo 6 caracteres."}, 400
        if Doctor.query.filter_by(email=data["email"]).first():
            return {"message": "Médico já cadastrado!"}, 400

        hashed_pw = bcrypt.generate_password_hash(data["password"]).decode("utf-8")
        new_doctor = Doctor(
            name=data["name"].strip(),
            email=data["email"],
            password=hashed_pw,
            crm=data.get("crm"),
            specialization=data.get("specialization")
        )
        try:
            db.session.add(new_doctor)
            db.session.commit()
            current_app.logger.info("Médico %s registrado", new_doctor.id)
            return {"message": "Médico registrado com sucesso!", "id": new_doctor.id}, 201
        except Exception as e:
            db.session.rollback()
            current_app.logger.exception("Erro ao cadastrar médico")
            return {"message": "Erro ao cadastrar médico.", "error": str(e)}, 500


@auth_ns.route("/login")
class Login(Resource):
    decorators = [limiter.limit("10 per minute")]

    @auth_ns.expect(login_model, validate=True)
    def post(self):
        data = request.get_json()
        doctor = Doctor.query.filter_by(email=data["email"]).first()
        if not doctor or not bcrypt.check_password_hash(doctor.password, data["password"]):
            return {"message": "E-mail ou senha inválidos!"}, 401

        token = jwt.encode({
            "id": doctor.id,
            "exp": datetime.datetime.now(datetime.timezone.utc) + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"]
        }, current_app.config["SECRET_KEY"], algorithm="HS256")

        return {"token": token, "doctor": doctor_payload(doctor)}, 200


@auth_ns.route("/me")
class Me(Resource):
    @token_required
    def get(current_doctor, self):
        """
        Restaura a sessão: devolve o médico dono do token.
        """
        return {"doctor": doctor_payload(current_doctor)}, 200
