from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]


def test_required_project_files_exist():
    required_paths = [
        PROJECT_ROOT / "README.md",
        PROJECT_ROOT / ".gitignore",
        PROJECT_ROOT / ".env.example",
        PROJECT_ROOT / "pyproject.toml",
    ]
    missing = [str(path) for path in required_paths if not path.exists()]
    assert not missing, f"Missing required project files: {missing}"


def test_env_example_does_not_contain_realistic_secret_prefix():
    env_example = (PROJECT_ROOT / ".env.example").read_text(encoding="utf-8")
    assert "sk-" not in env_example
    assert "your_llm_api_key_here" in env_example


def test_gitignore_covers_main_runtime_artifacts():
    gitignore = (PROJECT_ROOT / ".gitignore").read_text(encoding="utf-8")
    for pattern in [".venv/", ".env", "outputs/*"]:
        assert pattern in gitignore


def test_pyproject_declares_spreadsheet_and_web_dependencies():
    pyproject = (PROJECT_ROOT / "pyproject.toml").read_text(encoding="utf-8")
    for name in ["openpyxl", "fastapi", "python-multipart", "requests", "python-dotenv"]:
        assert name in pyproject


def test_readme_contains_quickstart_test_and_simulated_data_sections():
    readme = (PROJECT_ROOT / "README.md").read_text(encoding="utf-8")
    assert "Quickstart" in readme
    assert "Tests" in readme
    assert "simulated" in readme.lower()
