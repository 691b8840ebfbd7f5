"""Tests for the command line interface."""

import pytest
from tomli_w import dump as tomli_w_dump

from pathfisher.cli import main, parse_args, update_config


@pytest.fixture
def config_file(tmp_path):
    """Configuration pointing at small GMT and gene list files."""
    gmt_file = tmp_path / "pathways.gmt"
    gmt_file.write_text(
        "P_UP%CUSTOM\tUp\tG1\tG2\tG3\tG4\n"
        "P_OTHER%CUSTOM\tOther\tG10\tG11\tG12\tG13\n"
    )
    gene_lists = tmp_path / "gene_lists.tsv"
    lines = ["set\tgene"] + [f"background\tG{i}" for i in range(1, 21)] + [f"hits\tG{i}" for i in (1, 2, 3, 15)]
    gene_lists.write_text("\n".join(lines) + "\n")

    config = {
        'input': {
            'pathways_file': str(gmt_file),
            'gene_lists_file': str(gene_lists),
        },
        'output': {
            'directory': str(tmp_path / 'results'),
        },
        'analysis': {
            'qvalue_cutoff': 1.0,
        },
    }
    config_path = tmp_path / 'config.toml'
    with open(config_path, 'wb') as f:
        tomli_w_dump(config, f)
    return config_path


def test_update_config():
    """Command line options override configuration values."""
    args = parse_args([
        "config.toml",
        "--pathways", "other.gmt",
        "--output-dir", "out",
        "--num-threads", "4",
        "--max-genes", "0",
        "--qvalue-cutoff", "0.1",
        "--femap",
    ])
    config = update_config({'input': {'pathways_file': 'p.gmt', 'gene_lists_file': 'g.tsv'}}, args)

    assert config['input'] == {'pathways_file': 'other.gmt', 'gene_lists_file': 'g.tsv'}
    assert config['output']['directory'] == 'out'
    assert config['analysis'] == {'num_threads': 4, 'max_genes': 0, 'qvalue_cutoff': 0.1}
    assert config['femap']['run'] is True


def test_update_config_without_overrides():
    args = parse_args(["config.toml"])
    config = update_config({'input': {}, 'output': {'directory': 'results'}, 'analysis': {}}, args)
    assert config == {'input': {}, 'output': {'directory': 'results'}, 'analysis': {}}


def test_main(config_file, tmp_path, restore_root_logger):
    """Test a complete run from the command line."""
    main([str(config_file), "--min-genes", "2"])

    output_dir = tmp_path / 'results'
    assert (output_dir / 'data' / 'results_hits.tsv').exists()
    assert (output_dir / 'data' / 'femap' / 'femap_hits.txt').exists()
    assert (output_dir / 'logs' / 'pipeline.log').exists()


def test_main_output_dir_override(config_file, tmp_path, restore_root_logger):
    main([str(config_file), "--output-dir", str(tmp_path / 'elsewhere')])
    assert (tmp_path / 'elsewhere' / 'data' / 'results_hits.tsv').exists()
    assert not (tmp_path / 'results').exists()


def test_main_missing_config(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main([str(tmp_path / 'missing.toml')])
    assert exc_info.value.code == 1
    assert "Error loading configuration file" in capsys.readouterr().err


def test_main_invalid_background(config_file, tmp_path, restore_root_logger):
    """Genes outside the background end the run with exit code 1."""
    with open(tmp_path / 'gene_lists.tsv', 'a') as f:
        f.write("hits\tNOT_IN_BACKGROUND\n")

    with pytest.raises(SystemExit) as exc_info:
        main([str(config_file)])
    assert exc_info.value.code == 1
    assert not (tmp_path / 'results' / 'data').exists()
