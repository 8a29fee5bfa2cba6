"""Interactive collection of the per-run database credentials."""

import os
from typing import Callable, Mapping, Optional

import click

from wpdeploy.constants import MYSQL_MAX_USERNAME_LENGTH, SECRET_ENV_VARS
from wpdeploy.errors import DeployError
from wpdeploy.errors_catalog import actionable_error
from wpdeploy.models import Credentials


class CredentialPrompter:
    """Prompts for the credential triple without echo. Values stay in memory only."""

    PROMPTS = (
        ("mysql_root_password", "MySQL root password"),
        ("wordpress_db_user", "WordPress database user"),
        ("wordpress_db_password", "WordPress database password"),
    )

    def __init__(self, prompt: Callable = click.prompt, environ: Optional[Mapping[str, str]] = None):
        self.prompt = prompt
        self.environ = os.environ if environ is None else environ

    def collect(self) -> Credentials:
        values = {}
        for field_name, label in self.PROMPTS:
            env_var = SECRET_ENV_VARS[field_name]
            value = self.environ.get(env_var)
            if not value:
                value = self.prompt(label, hide_input=True, default="", show_default=False)
            value = (value or "").strip()
            if not value:
                raise DeployError(actionable_error("missing_secret", label=label, env_var=env_var))
            values[field_name] = value

        self.validate_db_user(values["wordpress_db_user"])
        return Credentials(**values)

    @staticmethod
    def validate_db_user(user: str):
        if user == "root":
            raise DeployError(
                "The WordPress database user cannot be 'root'; the MySQL image only creates "
                "regular users from MYSQL_USER."
            )
        if len(user) > MYSQL_MAX_USERNAME_LENGTH:
            raise DeployError(
                f"The WordPress database user must be at most {MYSQL_MAX_USERNAME_LENGTH} characters."
            )
