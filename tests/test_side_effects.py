"""Tests for side-effect descriptions of config replacements."""

from dockwarden.checks.targets import find_service_key
from dockwarden.engine.side_effects import NO_SIDE_EFFECTS, UNPARSEABLE, describe_side_effects


BASE = """\
services:
  web:
    image: nginx:1.25
    user: "101"
    ports:
      - "80:80"
    networks:
      - front
"""


def test_structural_notes(make_fix_finding, sample_compose, fixed_compose):
    finding = make_fix_finding("/srv/docker-compose.yml", fixed_compose)

    text = describe_side_effects(sample_compose, fixed_compose, finding)

    assert text == (
        "Port mappings will change - may affect external access; "
        "Privileged mode will be disabled - container may lose access to host resources; "
        "Container 'acme-db-1' will be restarted"
    )


def test_user_and_network_changes(make_fix_finding):
    proposed = BASE.replace('user: "101"', 'user: "1000"').replace("- front", "- back")
    finding = make_fix_finding("/srv/docker-compose.yml", proposed, container="web", requires_restart=False)

    text = describe_side_effects(BASE, proposed, finding)

    assert "Network configuration will change" in text
    assert "Container user will change" in text
    assert "Port mappings" not in text
    assert "restarted" not in text


def test_volume_change(make_fix_finding):
    proposed = BASE + "    volumes:\n      - ./html:/usr/share/nginx/html:ro\n"
    finding = make_fix_finding("/srv/docker-compose.yml", proposed, container="web", requires_restart=False)

    assert describe_side_effects(BASE, proposed, finding) == (
        "Volume mounts will change - ensure data is backed up"
    )


def test_falls_back_to_payload_text(make_fix_finding):
    proposed = BASE.replace("nginx:1.25", "nginx:1.25.4")
    finding = make_fix_finding("/srv/docker-compose.yml", proposed, container="web", requires_restart=False)

    assert describe_side_effects(BASE, proposed, finding) == "Database only reachable locally"


def test_default_text_when_payload_silent(make_fix_finding):
    proposed = BASE.replace("nginx:1.25", "nginx:1.25.4")
    finding = make_fix_finding(
        "/srv/docker-compose.yml", proposed, container="web", requires_restart=False, side_effects=""
    )

    assert describe_side_effects(BASE, proposed, finding) == NO_SIDE_EFFECTS


def test_restart_note_appended_to_fallback(make_fix_finding):
    proposed = BASE.replace("nginx:1.25", "nginx:1.25.4")
    finding = make_fix_finding("/srv/docker-compose.yml", proposed, container="web", side_effects="")

    assert describe_side_effects(BASE, proposed, finding) == (
        f"{NO_SIDE_EFFECTS}; Container 'web' will be restarted"
    )


def test_unparseable_yaml(make_fix_finding):
    finding = make_fix_finding("/srv/docker-compose.yml", "services: [unclosed")

    assert describe_side_effects(BASE, "services: [unclosed", finding) == UNPARSEABLE


def test_invalid_timestamp_scalar_is_unparseable(make_fix_finding):
    original = BASE + "    labels:\n      built: 2024-13-45\n"
    finding = make_fix_finding("/srv/docker-compose.yml", BASE, container="web")

    assert describe_side_effects(original, BASE, finding) == UNPARSEABLE


def test_unknown_service_uses_fallback(make_fix_finding):
    proposed = BASE.replace('"80:80"', '"127.0.0.1:80:80"')
    finding = make_fix_finding("/srv/docker-compose.yml", proposed, container="zzz", requires_restart=False)

    assert describe_side_effects(BASE, proposed, finding) == "Database only reachable locally"


class TestFindServiceKey:
    def test_explicit_container_name_wins(self):
        services = {"web": {"image": "nginx"}, "db": {"container_name": "acme-web-1"}}
        assert find_service_key(services, "acme-web-1") == "db"

    def test_compose_generated_names(self):
        services = {"web": {}, "worker": {}}
        assert find_service_key(services, "shop_worker_1") == "worker"
        assert find_service_key(services, "shop-web-1") == "web"

    def test_substring_fallback(self):
        assert find_service_key({"api": {}}, "staging-api-blue") == "api"

    def test_no_match(self):
        assert find_service_key({"api": {}}, "redis") is None
        assert find_service_key(None, "redis") is None
        assert find_service_key({"api": {}}, "") is None
