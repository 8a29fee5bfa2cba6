from wpdeploy.models import AppSettings, Credentials, HostRecord
from wpdeploy.services.application import ApplicationService


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def debug(self, *_args, **_kwargs):
        return None


class RecordingDocker:
    def __init__(self):
        self.calls = []

    def server_version(self, host):
        self.calls.append(("server_version", host.name))
        return "24.0.7"

    def ensure_network(self, host, name):
        self.calls.append(("ensure_network", name))
        return True

    def recreate_container(self, host, spec):
        self.calls.append(("recreate", spec.name))
        return True

    def wait_for_mysql(self, host, name):
        self.calls.append(("wait_for_mysql", name))


class FakeHttpCheck:
    def __init__(self):
        self.urls = []

    def wait_until_ready(self, url):
        self.urls.append(url)
        return 302


CREDENTIALS = Credentials(
    mysql_root_password="root-pass",
    wordpress_db_user="wpuser",
    wordpress_db_password="wp-pass",
)


def _service(settings=None, http_check=None, docker=None):
    return ApplicationService(
        docker_runtime=docker or RecordingDocker(),
        settings=settings or AppSettings(),
        credentials=CREDENTIALS,
        logger=DummyLogger(),
        http_check=http_check,
    )


def test_container_specs_share_network_and_credentials():
    service = _service()

    mysql = service.mysql_spec()
    wordpress = service.wordpress_spec()

    assert mysql.network == wordpress.network == "wordpress_net"
    assert mysql.image == "mysql:5.7"
    assert mysql.env == {
        "MYSQL_ROOT_PASSWORD": "root-pass",
        "MYSQL_DATABASE": "wordpress",
        "MYSQL_USER": "wpuser",
        "MYSQL_PASSWORD": "wp-pass",
    }
    assert wordpress.ports == ((80, 80),)
    assert wordpress.env["WORDPRESS_DB_HOST"] == "mysql:3306"
    assert wordpress.env["WORDPRESS_DB_USER"] == "wpuser"
    assert wordpress.env["WORDPRESS_DB_PASSWORD"] == "wp-pass"
    assert wordpress.env["WORDPRESS_DB_NAME"] == "wordpress"


def test_run_args_never_contain_secret_values():
    args = _service().wordpress_spec().run_args()

    assert "--publish" in args and "80:80" in args
    assert "WORDPRESS_DB_PASSWORD" in args
    assert "wp-pass" not in args
    assert args[-1] == "wordpress:latest"


def test_custom_settings_flow_into_specs():
    settings = AppSettings(network_name="blog", mysql_container_name="db", wordpress_port=8080)
    service = _service(settings=settings)

    assert service.wordpress_spec().env["WORDPRESS_DB_HOST"] == "db:3306"
    assert service.wordpress_spec().ports == ((8080, 80),)
    assert service.site_url(HostRecord(name="web", public_ip="3.3.3.3")) == "http://3.3.3.3:8080/"


def test_tasks_run_in_order_and_recreate_both_containers():
    docker = RecordingDocker()
    service = _service(docker=docker)
    host = HostRecord(name="web-1", public_ip="3.3.3.3")
    facts = {}

    names = [task.name for task in service.tasks()]
    changes = [task.action(host, facts) for task in service.tasks()]

    assert names == ["check_docker", "ensure_network", "recreate_mysql", "wait_for_mysql", "recreate_wordpress"]
    assert changes == [False, True, True, False, True]
    assert docker.calls == [
        ("server_version", "web-1"),
        ("ensure_network", "wordpress_net"),
        ("recreate", "mysql"),
        ("wait_for_mysql", "mysql"),
        ("recreate", "wordpress"),
    ]
    assert facts["docker_version"] == "24.0.7"


def test_verify_http_task_is_optional():
    http_check = FakeHttpCheck()
    service = _service(http_check=http_check)
    host = HostRecord(name="web-1", public_ip="3.3.3.3")

    tasks = service.tasks()
    facts = {}
    tasks[-1].action(host, facts)

    assert tasks[-1].name == "verify_http"
    assert http_check.urls == ["http://3.3.3.3/"]
    assert facts["http_status"] == 302


def test_describe_is_secret_free():
    summary = str(_service().describe())

    for secret in CREDENTIALS.secret_values():
        assert secret not in summary
