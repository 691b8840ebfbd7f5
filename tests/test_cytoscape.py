"""Tests for drawing EnrichmentMap networks through CyREST."""

import json

import httpx
import pytest

from pathfisher.cytoscape import (
    CytoscapeCommandError,
    EnrichmentMapClient,
    FemapReport,
    FemapStep,
    plot_femap,
)

STEP_NAMES = [
    "ping",
    "replace network",
    "build network",
    "set chart data",
    "annotate clusters",
    "apply layout",
    "hide node labels",
    "fit content",
    "export image",
]


class FakeCytoscape:
    """Records CyREST requests and answers them like a running session."""

    def __init__(self, fail_command=None):
        self.requests = []
        self.fail_command = fail_command

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body))
        path = request.url.path

        if path == "/v1/version":
            return httpx.Response(200, json={"apiVersion": "v1", "cytoscapeVersion": "3.10.2"})
        if path == "/v1/networks.names":
            return httpx.Response(200, json=[{"SUID": 123, "name": "generic"}])
        if request.method == "DELETE":
            return httpx.Response(200, json={})
        if path.startswith("/v1/commands/"):
            if self.fail_command and path.endswith(self.fail_command):
                return httpx.Response(200, json={"data": {}, "errors": [{"message": "No clusters found"}]})
            return httpx.Response(200, json={"data": {}, "errors": []})
        if path.startswith("/v1/styles/"):
            return httpx.Response(204)
        return httpx.Response(404, text="Not found")

    def paths(self):
        return [(method, path) for method, path, _ in self.requests]


def _client(handler):
    return EnrichmentMapClient("http://localhost:1234/v1", transport=httpx.MockTransport(handler))


def test_plot_femap_all_steps(tmp_path):
    """Test a complete drawing against a responsive session."""
    fake = FakeCytoscape()
    report = plot_femap(
        tmp_path / "pathways.gmt",
        tmp_path / "femap",
        image_file=tmp_path / "femap.png",
        qvalue=0.25,
        hide_node_labels=True,
        client=_client(fake),
    )

    assert report.ok
    assert [step.name for step in report.steps] == STEP_NAMES
    assert report.image_file == (tmp_path / "femap.png").absolute()

    paths = fake.paths()
    assert ("DELETE", "/v1/networks/123") in paths
    assert ("PUT", "/v1/styles/EM1_Visual_Style/defaults") in paths

    mastermap = next(body for method, path, body in fake.requests if path.endswith("/mastermap"))
    assert mastermap["qvalue"] == 0.25
    assert mastermap["networkName"] == "generic"
    assert mastermap["rootFolder"] == str((tmp_path / "femap").absolute())

    export = next(body for method, path, body in fake.requests if path == "/v1/commands/view/export")
    assert export["options"] == "PNG"


def test_plot_femap_keeps_labels_by_default(tmp_path):
    fake = FakeCytoscape()
    report = plot_femap(tmp_path / "p.gmt", tmp_path, image_file=tmp_path / "map.svg", client=_client(fake))

    assert report.ok
    assert not any(path.startswith("/v1/styles/") for _, path in fake.paths())
    export = next(body for method, path, body in fake.requests if path == "/v1/commands/view/export")
    assert export["options"] == "SVG"


def test_plot_femap_unreachable(tmp_path):
    """A refused connection fails the first step and skips the rest."""
    def refuse(request):
        raise httpx.ConnectError("Connection refused", request=request)

    report = plot_femap(tmp_path / "p.gmt", tmp_path, client=_client(refuse))

    assert not report.ok
    assert report.image_file is None
    assert report.failed_step.name == "ping"
    assert "Connection refused" in report.failed_step.detail
    assert [step.state for step in report.steps] == ["failed"] + ["skipped"] * (len(STEP_NAMES) - 1)


def test_plot_femap_command_error(tmp_path):
    fake = FakeCytoscape(fail_command="annotate-clusterBoosted")
    report = plot_femap(tmp_path / "p.gmt", tmp_path, client=_client(fake))

    assert report.failed_step.name == "annotate clusters"
    assert "No clusters found" in report.failed_step.detail
    states = {step.name: step.state for step in report.steps}
    assert states["build network"] == "ok"
    assert states["export image"] == "skipped"


@pytest.mark.parametrize("kwargs, message", [
    ({"qvalue": 1.5}, "qvalue must lie between 0 and 1"),
    ({"form_sim": "COSINE"}, "Unknown similarity formula"),
    ({"clust_alg": "KMEANS"}, "Unknown cluster algorithm"),
    ({"image_file": "map.bmp"}, "Unsupported image format"),
])
def test_plot_femap_invalid_parameters(tmp_path, kwargs, message):
    with pytest.raises(ValueError, match=message):
        plot_femap(tmp_path / "p.gmt", tmp_path, **kwargs)


def test_client_http_error():
    client = _client(lambda request: httpx.Response(500, json={"errors": [{"message": "boom"}]}))
    with pytest.raises(CytoscapeCommandError, match="boom") as exc_info:
        client.ping()
    assert exc_info.value.status_code == 500
    client.close()


def test_client_network_names():
    with _client(FakeCytoscape()) as client:
        assert client.network_names() == {"generic": 123}


def test_report_without_steps():
    assert not FemapReport().ok
    report = FemapReport(steps=[FemapStep("ping", "ok")])
    assert report.ok
    assert report.failed_step is None


def test_plot_femap_non_json_reply(tmp_path):
    """A reply that is not JSON fails the step instead of raising."""
    client = _client(lambda request: httpx.Response(200, text="OK", headers={"content-type": "text/plain"}))
    report = plot_femap(tmp_path / "p.gmt", tmp_path, client=client)

    assert not report.ok
    assert report.failed_step.name == "ping"
    assert "Invalid JSON response" in report.failed_step.detail
    assert report.steps[-1].state == "skipped"


def test_plot_femap_unexpected_network_list(tmp_path):
    fake = FakeCytoscape()

    def handler(request):
        if request.url.path == "/v1/networks.names":
            return httpx.Response(200, json={"networks": "generic"})
        return fake(request)

    report = plot_femap(tmp_path / "p.gmt", tmp_path, client=_client(handler))
    assert report.failed_step.name == "replace network"
    assert "Unexpected network list" in report.failed_step.detail


def test_client_malformed_error_body():
    client = _client(lambda request: httpx.Response(
        500, content=b"{not json", headers={"content-type": "application/json"}
    ))
    with pytest.raises(CytoscapeCommandError, match="Invalid JSON response") as exc_info:
        client.ping()
    assert exc_info.value.status_code == 500
    client.close()
