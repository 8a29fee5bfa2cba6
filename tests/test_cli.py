from click.testing import CliRunner

import wpdeploy.cli as cli_module
from wpdeploy.models import Credentials


class FakeDeployer:
    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.dry_run = kwargs.get("dry_run", False)
        self.credentials = "unset"
        FakeDeployer.instances.append(self)

    def install_packages(self):
        return 0

    def deploy_application(self, credentials):
        self.credentials = credentials
        return 0


class FakePrompter:
    def collect(self):
        return Credentials("root-pass", "wpuser", "wp-pass")


def _patch(monkeypatch):
    FakeDeployer.instances = []
    monkeypatch.setattr(cli_module, "Deployer", FakeDeployer)
    monkeypatch.setattr(cli_module, "CredentialPrompter", FakePrompter)


def test_install_packages_uses_config_and_allows_cli_override(tmp_path, monkeypatch):
    _patch(monkeypatch)
    config_file = tmp_path / ".wpdeploy.yml"
    config_file.write_text(
        "inventory: config-hosts\nforks: 3\nuser: ec2-user\npackages: [docker]\n",
        encoding="utf-8",
    )

    result = CliRunner().invoke(
        cli_module.main,
        ["install-packages", "--config", str(config_file), "--forks", "8", "--no-become"],
    )

    assert result.exit_code == 0, result.output
    kwargs = FakeDeployer.instances[0].kwargs
    assert kwargs["inventory_source"] == "config-hosts"
    assert kwargs["forks"] == 8
    assert kwargs["user"] == "ec2-user"
    assert kwargs["become"] is False
    assert kwargs["packages"] == ["docker"]


def test_default_config_file_is_picked_up(tmp_path, monkeypatch):
    _patch(monkeypatch)
    (tmp_path / ".wpdeploy.yml").write_text("inventory: default-hosts\nlimit: wordpress\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, ["install-packages"])

    assert result.exit_code == 0, result.output
    assert FakeDeployer.instances[0].kwargs["inventory_source"] == "default-hosts"
    assert FakeDeployer.instances[0].kwargs["limit"] == "wordpress"


def test_inventory_is_required(tmp_path, monkeypatch):
    _patch(monkeypatch)
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, ["install-packages"])

    assert result.exit_code != 0
    assert "Missing required option '--inventory'" in result.output


def test_deploy_application_prompts_and_builds_app_settings(tmp_path, monkeypatch):
    _patch(monkeypatch)
    config_file = tmp_path / "deploy.yml"
    config_file.write_text("wordpress_port: 8080\nmysql_image: mysql:8.0\n", encoding="utf-8")

    result = CliRunner().invoke(
        cli_module.main,
        ["deploy-application", "-i", "hosts", "--config", str(config_file), "--verify-http"],
    )

    assert result.exit_code == 0, result.output
    deployer = FakeDeployer.instances[0]
    assert deployer.kwargs["verify_http"] is True
    assert deployer.kwargs["app_settings"].wordpress_port == 8080
    assert deployer.kwargs["app_settings"].mysql_image == "mysql:8.0"
    assert deployer.kwargs["app_settings"].network_name == "wordpress_net"
    assert deployer.credentials.wordpress_db_user == "wpuser"


def test_deploy_application_dry_run_skips_prompt(monkeypatch):
    _patch(monkeypatch)

    class ExplodingPrompter:
        def collect(self):
            raise AssertionError("dry run must not prompt")

    monkeypatch.setattr(cli_module, "CredentialPrompter", ExplodingPrompter)

    result = CliRunner().invoke(cli_module.main, ["deploy-application", "-i", "a,b", "--dry-run"])

    assert result.exit_code == 0, result.output
    assert FakeDeployer.instances[0].credentials is None


def test_deploy_application_prompts_through_click(monkeypatch):
    FakeDeployer.instances = []
    monkeypatch.setattr(cli_module, "Deployer", FakeDeployer)
    for name in ("WPDEPLOY_MYSQL_ROOT_PASSWORD", "WPDEPLOY_WORDPRESS_DB_USER", "WPDEPLOY_WORDPRESS_DB_PASSWORD"):
        monkeypatch.delenv(name, raising=False)

    result = CliRunner().invoke(
        cli_module.main,
        ["deploy-application", "-i", "a,b"],
        input="rootpw\nwpuser\nwppw\n",
    )

    assert result.exit_code == 0, result.output
    assert "rootpw" not in result.output
    assert FakeDeployer.instances[0].credentials.wordpress_db_password == "wppw"


def test_config_credentials_are_refused(tmp_path, monkeypatch):
    _patch(monkeypatch)
    config_file = tmp_path / "bad.yml"
    config_file.write_text("wordpress_db_password: nope\n", encoding="utf-8")

    result = CliRunner().invoke(cli_module.main, ["deploy-application", "-i", "a,b", "--config", str(config_file)])

    assert result.exit_code != 0
    assert "never read from config files" in result.output


def test_inventory_command_prints_groups(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    inventory = tmp_path / "hosts"
    inventory.write_text("[wordpress]\nweb-1 ansible_host=3.3.3.3\n", encoding="utf-8")

    result = CliRunner().invoke(cli_module.main, ["inventory", "-i", str(inventory)])

    assert result.exit_code == 0, result.output
    assert "@wordpress" in result.output
    assert "web-1" in result.output


def test_non_numeric_config_value_is_a_click_error(tmp_path, monkeypatch):
    _patch(monkeypatch)
    config_file = tmp_path / "bad.yml"
    config_file.write_text("wordpress_port: http\n", encoding="utf-8")

    result = CliRunner().invoke(cli_module.main, ["deploy-application", "-i", "a,b", "--config", str(config_file)])

    assert result.exit_code == 1
    assert "'wordpress_port' must be an integer" in result.output
    assert not isinstance(result.exception, ValueError)
