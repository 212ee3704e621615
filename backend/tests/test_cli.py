"""
CLI command tests.
"""

from conftest import PASSWORD, make_app
from storefront.config import INSECURE_JWT_SECRET
from storefront.models import AuditEvent, User


class TestUsersCommands:
    def test_create_customer(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create-customer",
            "--email", "Cli@Example.com",
            "--password", PASSWORD,
            "--first-name", "Cli",
            "--last-name", "User",
        ])
        assert result.exit_code == 0, result.output
        assert "PASS" in result.output

        user = User.query.one()
        assert user.email == "cli@example.com"
        assert user.role == "customer"
        assert AuditEvent.query.one().ip_address == "cli"

    def test_create_customer_rejects_weak_password(self, app):
        result = app.test_cli_runner().invoke(args=[
            "users", "create-customer",
            "--email", "cli@example.com",
            "--password", "weak",
            "--first-name", "Cli",
            "--last-name", "User",
        ])
        assert result.exit_code == 1
        assert User.query.count() == 0

    def test_list_and_deactivate(self, app, client, registered_customer):
        runner = app.test_cli_runner()

        listed = runner.invoke(args=["users", "list"])
        assert "ada@example.com" in listed.output

        result = runner.invoke(args=["users", "deactivate", "ada@example.com"])
        assert result.exit_code == 0
        assert User.query.one().is_active is False

        resp = client.post("/api/auth/customer/login", json={"email": "ada@example.com", "password": PASSWORD})
        assert resp.status_code == 401

    def test_deactivate_unknown(self, app):
        result = app.test_cli_runner().invoke(args=["users", "deactivate", "nobody@example.com"])
        assert result.exit_code == 1


class TestInspection:
    def test_stores_list(self, app, registered_owner):
        result = app.test_cli_runner().invoke(args=["stores", "list"])
        assert "chez-marie" in result.output
        assert "pending_docs=6" in result.output

    def test_audit_list_filtered(self, app, registered_owner, registered_customer):
        owner_id = registered_owner["user"]["id"]
        result = app.test_cli_runner().invoke(args=["audit", "list", "--user-id", owner_id])
        assert result.exit_code == 0
        assert "STORE_REGISTERED" in result.output
        assert registered_customer["user"]["id"] not in result.output


class TestCheckConfig:
    def test_development_passes(self, app):
        result = app.test_cli_runner().invoke(args=["system", "check-config"])
        assert result.exit_code == 0

    def test_production_with_default_key_fails(self, caplog):
        app = make_app(APP_ENV="production", JWT_SECRET_KEY=INSECURE_JWT_SECRET)
        assert "INSECURE_CONFIG" in caplog.text

        result = app.test_cli_runner().invoke(args=["system", "check-config"])
        assert result.exit_code == 1
        assert "JWT_SECRET_KEY" in result.output

    def test_health_reports_config(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["checks"]["database"]["status"] == "healthy"
