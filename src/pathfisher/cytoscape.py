"""
Draw EnrichmentMap networks of pathway results in a running Cytoscape session.

Cytoscape is driven through its CyREST API. The drawing is a sequence of
remote steps; each step is reported individually and the first failure stops
the sequence. Nothing here touches the result tables themselves.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import httpx

logger = logging.getLogger(__name__)

DEFAULT_CYREST_URL = "http://localhost:1234/v1"
EM_STYLE = "EM1_Visual_Style"

SIMILARITY_FORMULAS = {"OVERLAP", "JACCARD", "COMBINED"}
CHART_DATA = {"NES_VALUE", "P_VALUE", "FDR_VALUE", "PHENOTYPES", "DATA_SET", "EXPRESSION_SET", "NONE"}
CLUSTER_ALGORITHMS = {
    "AFFINITY_PROPAGATION", "CLUSTER_FIZZIFIER", "GLAY", "CONNECTED_COMPONENTS", "MCL", "SCPS",
}
IMAGE_FORMATS = {".png": "PNG", ".pdf": "PDF", ".svg": "SVG", ".jpg": "JPEG", ".jpeg": "JPEG"}


class CytoscapeCommandError(Exception):
    """A CyREST request returned an error."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"CyREST error {status_code}: {message}")


@dataclass(frozen=True)
class FemapStep:
    """Outcome of one remote step: ``ok``, ``failed`` or ``skipped``."""

    name: str
    state: str
    detail: str = ""


@dataclass
class FemapReport:
    """Step-by-step report of an EnrichmentMap drawing."""

    steps: List[FemapStep] = field(default_factory=list)
    image_file: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return bool(self.steps) and all(step.state == "ok" for step in self.steps)

    @property
    def failed_step(self) -> Optional[FemapStep]:
        return next((step for step in self.steps if step.state == "failed"), None)


def _error_messages(errors) -> str:
    return "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)


class EnrichmentMapClient:
    """Thin CyREST client exposing the commands needed to draw an EnrichmentMap."""

    def __init__(
        self,
        base_url: str = DEFAULT_CYREST_URL,
        *,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "EnrichmentMapClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @staticmethod
    def _decode(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            body = resp.text[:200]
            raise CytoscapeCommandError(resp.status_code, f"Invalid JSON response ({e}): {body!r}") from e

    def _request(self, method: str, path: str, *, params: Optional[Dict[str, Any]] = None,
                 json: Any = None) -> Any:
        resp = self._client.request(method, path, params=params, json=json)
        if 200 <= resp.status_code < 300:
            if resp.status_code == 204 or not resp.content:
                return None
            return self._decode(resp)

        message = resp.text
        if resp.headers.get("content-type", "").startswith("application/json"):
            payload = self._decode(resp)
            if isinstance(payload, dict) and payload.get("errors"):
                message = _error_messages(payload["errors"])
        raise CytoscapeCommandError(resp.status_code, message)

    def ping(self) -> Dict[str, Any]:
        """Return the CyREST and Cytoscape versions of the running session."""
        return self._request("GET", "/version")

    def network_names(self) -> Dict[str, int]:
        """Map network names to their SUIDs."""
        networks = self._request("GET", "/networks.names") or []
        try:
            return {net["name"]: net["SUID"] for net in networks}
        except (KeyError, TypeError) as e:
            raise CytoscapeCommandError(200, f"Unexpected network list: {networks!r}") from e

    def delete_network(self, suid: int) -> None:
        self._request("DELETE", f"/networks/{suid}")

    def command(self, namespace: str, command: str, **arguments) -> Any:
        """
        Run a Cytoscape command, e.g. ``command("layout", "force-directed", network="x")``.

        Returns:
            The ``data`` member of the JSON command response
        """
        payload = self._request("POST", f"/commands/{namespace}/{command}", json=arguments)
        if isinstance(payload, dict):
            if payload.get("errors"):
                raise CytoscapeCommandError(200, _error_messages(payload["errors"]))
            return payload.get("data")
        return payload

    def set_node_font_size_default(self, size: int, style: str = EM_STYLE) -> None:
        self._request(
            "PUT",
            f"/styles/{style}/defaults",
            json=[{"visualProperty": "NODE_LABEL_FONT_SIZE", "value": size}],
        )

    def fit_content(self) -> None:
        self.command("view", "fit content")

    def export_image(self, image_file: Union[str, Path]) -> Path:
        image_file = Path(image_file).absolute()
        image_format = IMAGE_FORMATS.get(image_file.suffix.lower())
        if image_format is None:
            raise ValueError(f"Unsupported image format: '{image_file.suffix}'")
        self.command("view", "export", outputFile=str(image_file), options=image_format)
        return image_file


def _validate_femap_params(pvalue, qvalue, form_sim, edge_sim, comb_sim, chart_data, clust_alg, image_file):
    for label, value in (("pvalue", pvalue), ("qvalue", qvalue), ("edge_sim", edge_sim), ("comb_sim", comb_sim)):
        if not 0 <= value <= 1:
            raise ValueError(f"{label} must lie between 0 and 1, got {value}")
    if form_sim not in SIMILARITY_FORMULAS:
        raise ValueError(f"Unknown similarity formula: {form_sim}")
    if chart_data not in CHART_DATA:
        raise ValueError(f"Unknown chart data: {chart_data}")
    if clust_alg not in CLUSTER_ALGORITHMS:
        raise ValueError(f"Unknown cluster algorithm: {clust_alg}")
    if Path(image_file).suffix.lower() not in IMAGE_FORMATS:
        raise ValueError(f"Unsupported image format: '{Path(image_file).suffix}'")


def plot_femap(
    gmt_file: Union[str, Path],
    results_folder: Union[str, Path],
    image_file: Union[str, Path] = "femap.png",
    pvalue: float = 1.0,
    qvalue: float = 1.0,
    form_sim: str = "COMBINED",
    edge_sim: float = 0.375,
    comb_sim: float = 0.5,
    chart_data: str = "NES_VALUE",
    clust_alg: str = "MCL",
    clust_words: int = 3,
    hide_node_labels: bool = False,
    net_name: str = "generic",
    client: Optional[EnrichmentMapClient] = None,
    base_url: str = DEFAULT_CYREST_URL,
) -> FemapReport:
    """
    Build, annotate, lay out and export an EnrichmentMap of exported results.

    Args:
        gmt_file: GMT file of the tested pathways
        results_folder: Folder holding the ``femap_*.txt`` generic results files
        image_file: Output image (png, pdf, svg or jpeg)
        pvalue: Node p-value cutoff
        qvalue: Node q-value cutoff
        form_sim: Similarity formula (OVERLAP, JACCARD or COMBINED)
        edge_sim: Edge similarity cutoff
        comb_sim: Jaccard/overlap mix used by the COMBINED formula
        chart_data: Node chart data
        clust_alg: clusterMaker algorithm used by AutoAnnotate
        clust_words: Maximum words per AutoAnnotate cluster label
        hide_node_labels: Hide node labels, keeping cluster labels
        net_name: Network name in Cytoscape
        client: Existing client; a new one is opened on ``base_url`` otherwise
        base_url: CyREST base URL

    Returns:
        FemapReport describing every step. Remote failures are reported, not raised.
    """
    _validate_femap_params(pvalue, qvalue, form_sim, edge_sim, comb_sim, chart_data, clust_alg, image_file)

    own_client = client is None
    if own_client:
        client = EnrichmentMapClient(base_url)

    def replace_network():
        existing = client.network_names()
        if net_name in existing:
            client.delete_network(existing[net_name])

    def hide_labels():
        if hide_node_labels:
            client.set_node_font_size_default(0)

    steps: List[tuple] = [
        ("ping", client.ping),
        ("replace network", replace_network),
        ("build network", lambda: client.command(
            "enrichmentmap", "mastermap",
            rootFolder=str(Path(results_folder).absolute()),
            networkName=net_name,
            commonGMTFile=str(Path(gmt_file).absolute()),
            pvalue=pvalue,
            qvalue=qvalue,
            coefficients=form_sim,
            similaritycutoff=edge_sim,
            combinedConstant=comb_sim,
        )),
        ("set chart data", lambda: client.command("enrichmentmap", "chart", data=chart_data)),
        ("annotate clusters", lambda: client.command(
            "autoannotate", "annotate-clusterBoosted",
            clusterAlgorithm=clust_alg,
            maxWords=clust_words,
            network=net_name,
        )),
        ("apply layout", lambda: client.command("layout", "force-directed", network=net_name)),
        ("hide node labels", hide_labels),
        ("fit content", client.fit_content),
        ("export image", lambda: client.export_image(image_file)),
    ]

    report = FemapReport()
    try:
        report.image_file = _run_steps(steps, report)
    finally:
        if own_client:
            client.close()
    return report


def _run_steps(steps: List[tuple], report: FemapReport) -> Optional[Path]:
    result = None
    failed = False
    for name, action in steps:
        if failed:
            report.steps.append(FemapStep(name, "skipped"))
            continue
        logger.info(f" => {name}")
        try:
            result = action()
        except (httpx.HTTPError, CytoscapeCommandError) as e:
            logger.warning(f"EnrichmentMap step '{name}' failed: {e}")
            report.steps.append(FemapStep(name, "failed", str(e)))
            failed = True
            continue
        report.steps.append(FemapStep(name, "ok"))

    if failed:
        return None
    logger.info(f"Drew EnrichmentMap to {result}")
    return result
