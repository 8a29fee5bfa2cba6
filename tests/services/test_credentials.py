import pytest

from wpdeploy.errors import DeployError
from wpdeploy.services.credentials import CredentialPrompter


class ScriptedPrompt:
    def __init__(self, answers):
        self.answers = list(answers)
        self.calls = []

    def __call__(self, label, **kwargs):
        self.calls.append((label, kwargs))
        return self.answers.pop(0)


def test_collect_prompts_without_echo():
    prompt = ScriptedPrompt(["rootpw", "wpuser", "wppw"])

    credentials = CredentialPrompter(prompt=prompt, environ={}).collect()

    assert credentials.mysql_root_password == "rootpw"
    assert credentials.wordpress_db_user == "wpuser"
    assert credentials.wordpress_db_password == "wppw"
    assert all(kwargs["hide_input"] is True for _label, kwargs in prompt.calls)
    assert "rootpw" not in repr(credentials)


def test_environment_values_skip_prompts():
    prompt = ScriptedPrompt(["wppw"])
    environ = {
        "WPDEPLOY_MYSQL_ROOT_PASSWORD": "rootpw",
        "WPDEPLOY_WORDPRESS_DB_USER": "wpuser",
    }

    credentials = CredentialPrompter(prompt=prompt, environ=environ).collect()

    assert [label for label, _kwargs in prompt.calls] == ["WordPress database password"]
    assert credentials.wordpress_db_user == "wpuser"


def test_empty_value_is_rejected():
    prompt = ScriptedPrompt(["   "])

    with pytest.raises(DeployError, match="WPDEPLOY_MYSQL_ROOT_PASSWORD"):
        CredentialPrompter(prompt=prompt, environ={}).collect()


def test_root_cannot_be_the_wordpress_user():
    prompt = ScriptedPrompt(["rootpw", "root", "wppw"])

    with pytest.raises(DeployError, match="cannot be 'root'"):
        CredentialPrompter(prompt=prompt, environ={}).collect()


def test_long_user_name_is_rejected():
    prompt = ScriptedPrompt(["rootpw", "u" * 33, "wppw"])

    with pytest.raises(DeployError, match="at most 32 characters"):
        CredentialPrompter(prompt=prompt, environ={}).collect()
