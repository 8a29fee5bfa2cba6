import pytest

from wpdeploy.errors import DeployError
from wpdeploy.services.config_loader import ConfigLoader


def test_config_loader_loads_yaml_mapping(tmp_path):
    config_file = tmp_path / ".wpdeploy.yml"
    config_file.write_text(
        "inventory: inventories/aws_ec2.yml\nforks: 10\npackages: [docker.io, curl]\n",
        encoding="utf-8",
    )

    loaded = ConfigLoader().load(str(config_file))

    assert loaded["inventory"] == "inventories/aws_ec2.yml"
    assert loaded["forks"] == 10
    assert loaded["packages"] == ["docker.io", "curl"]


def test_config_loader_rejects_unknown_keys(tmp_path):
    config_file = tmp_path / ".wpdeploy.yml"
    config_file.write_text("unknown_key: true\n", encoding="utf-8")

    with pytest.raises(DeployError, match="Unknown configuration keys"):
        ConfigLoader().load(str(config_file))


def test_config_loader_refuses_credentials(tmp_path):
    config_file = tmp_path / ".wpdeploy.yml"
    config_file.write_text("mysql_root_password: hunter2\n", encoding="utf-8")

    with pytest.raises(DeployError, match="never read from config files"):
        ConfigLoader().load(str(config_file))


def test_config_loader_validates_packages_type(tmp_path):
    config_file = tmp_path / ".wpdeploy.yml"
    config_file.write_text("packages: docker.io\n", encoding="utf-8")

    with pytest.raises(DeployError, match="list of package names"):
        ConfigLoader().load(str(config_file))


def test_config_loader_returns_empty_for_missing_path_argument():
    assert ConfigLoader().load(None) == {}


def test_config_loader_raises_for_absent_file(tmp_path):
    with pytest.raises(DeployError, match="Config file not found"):
        ConfigLoader().load(str(tmp_path / "nope.yml"))


@pytest.mark.parametrize(
    "content, message",
    [
        ("wordpress_port: http\n", "'wordpress_port' must be an integer"),
        ("forks: '5'\n", "'forks' must be an integer"),
        ("ssh_port: true\n", "'ssh_port' must be an integer"),
        ("command_timeout: soon\n", "'command_timeout' must be a number"),
        ("become: 'yes please'\n", "'become' must be true or false"),
    ],
)
def test_config_loader_validates_scalar_types(tmp_path, content, message):
    config_file = tmp_path / ".wpdeploy.yml"
    config_file.write_text(content, encoding="utf-8")

    with pytest.raises(DeployError, match=message):
        ConfigLoader().load(str(config_file))
