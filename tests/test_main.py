import sys
from unittest.mock import patch

import pytest
import yaml

import main


BLUEPRINT = {
    "filters": ["noise < 2"],
    "variables": {"iv": {"starts_with": "iv"}},
    "models": [{"name": "linear", "formula": "y ~ {iv}"}],
}


@pytest.fixture(autouse=True)
def reset_sys_argv():
    """Reset sys.argv after each test to avoid bleed-over."""
    old_argv = sys.argv.copy()
    yield
    sys.argv = old_argv


@pytest.fixture
def inputs(tmp_path, survey_df):
    """CSV dataset and YAML blueprint on disk."""
    data = tmp_path / "data.csv"
    survey_df.to_csv(data, index=False)
    blueprint = tmp_path / "blueprint.yaml"
    blueprint.write_text(yaml.dump(BLUEPRINT))
    return str(data), str(blueprint)


def test_validate_config_path_file_not_found(tmp_path):
    """Ensure FileNotFoundError is raised when config file does not exist."""
    non_existent = tmp_path / "missing.yaml"
    with pytest.raises(FileNotFoundError):
        main.validate_config_path(str(non_existent))


def test_count_command(inputs, capsys):
    """'count' prints pipeline and filter factor counts."""
    data, blueprint = inputs
    sys.argv = ["main.py", "count", "--data", data, "--blueprint", blueprint]

    main.main()

    out = capsys.readouterr().out
    assert "pipelines: 6" in out
    assert "filter factors: 1" in out


def test_filters_command(inputs, capsys):
    data, blueprint = inputs
    sys.argv = ["main.py", "filters", "--data", data, "--blueprint", blueprint]

    main.main()

    out = capsys.readouterr().out
    assert "rows_removed" in out
    assert "noise < 2" in out


def test_show_code_command(inputs, capsys):
    """'show-code' prints the resolved code of one stage."""
    data, blueprint = inputs
    sys.argv = [
        "main.py", "show-code", "--data", data, "--blueprint", blueprint,
        "--decision-id", "2", "--stage", "model",
    ]

    main.main()

    assert "ols('y ~ iv2', data=data).fit()" in capsys.readouterr().out


@patch("main.run_multiverse")
@patch("main.reveal")
def test_run_command_dispatch(mock_reveal, mock_run, inputs, tmp_path):
    """'run' expands the blueprint and hands the grid to the runner."""
    data, blueprint = inputs
    config_file = tmp_path / "multiverse.yaml"
    config_file.write_text(yaml.dump({"execution": {"n_workers": 3}}))
    mock_run.return_value = []
    output = tmp_path / "out" / "parameters.csv"

    sys.argv = [
        "main.py", "run", "--data", data, "--blueprint", blueprint,
        "--config", str(config_file), "--output", str(output),
    ]
    main.main()

    grid = mock_run.call_args[0][0]
    assert len(grid) == 6
    assert mock_run.call_args.kwargs["config"].n_workers == 3
    mock_reveal.assert_called_once_with([])
    mock_reveal.return_value.to_csv.assert_called_once_with(str(output), index=False)


def test_run_command_end_to_end(inputs, tmp_path):
    """'run' writes the parameter table."""
    data, blueprint = inputs
    output = tmp_path / "parameters.csv"
    sys.argv = ["main.py", "run", "--data", data, "--blueprint", blueprint, "--output", str(output), "--workers", "2"]

    main.main()

    content = output.read_text()
    assert "coefficient" in content
    assert "variable:iv" in content


def test_missing_data_file(tmp_path, inputs):
    _, blueprint = inputs
    sys.argv = ["main.py", "count", "--data", str(tmp_path / "nope.csv"), "--blueprint", blueprint]

    with pytest.raises(FileNotFoundError):
        main.main()


def test_main_invalid_command():
    """Test that argparse exits on invalid command."""
    sys.argv = ["main.py", "invalid"]

    with pytest.raises(SystemExit):
        main.main()
