"""Login, registro con clave secreta y logout."""

from typing import Any

from flask import Blueprint, jsonify, redirect, request, session

from exceptions import AuthenticationFailed, GestorBancoError, TooManyAttempts
from schemas import LOGIN_SCHEMA, REGISTER_SCHEMA

bp = Blueprint("auth", __name__)


def register(app, ctx) -> None:
    """Registra las rutas públicas de autenticación."""
    auth_service = ctx.auth_service
    text = ctx.text
    load_form = ctx.load_form
    current_user = ctx.current_user
    set_jwt_cookie = ctx.set_jwt_cookie
    clear_jwt_cookie = ctx.clear_jwt_cookie

    @bp.get("/showLogin")
    def show_login() -> Any:
        return jsonify(
            {
                "vista": "login",
                "error": request.args.get("error"),
                "logout": "logout" in request.args,
                "autenticado": current_user() is not None,
            }
        )

    @bp.post("/actlogin")
    def actlogin() -> Any:
        data = load_form(LOGIN_SCHEMA)
        try:
            token = auth_service.login(data["username"], data["password"], session)
        except TooManyAttempts:
            return redirect("/showLogin?error=too_many_attempts")
        except AuthenticationFailed:
            return redirect("/showLogin?error=true")
        return set_jwt_cookie(redirect("/index"), token)

    @bp.post("/register-secret")
    def register_secret() -> Any:
        try:
            auth_service.check_secret(request.form.get("secret", ""))
            data = load_form(REGISTER_SCHEMA)
            token = auth_service.register(
                data["secret"],
                data["username"],
                data["password"],
                {"nombre": data["nombre"], "apellidos": data["apellidos"], "email": data["email"]},
                data["role"],
            )
        except GestorBancoError as exc:
            return text(exc.message, exc.status_code)
        return set_jwt_cookie(text("Registro correcto", 200), token)

    @bp.get("/logout")
    def logout() -> Any:
        session.clear()
        return clear_jwt_cookie(redirect("/showLogin?logout=true"))

    app.register_blueprint(bp)
