import re
from pathlib import Path

PACKAGE_DIR = Path(__file__).resolve().parents[1] / "climate_seal"


def find_env_vars():
    """Find all environment variables referenced in code, including settings aliases."""
    env_vars = set()
    for py_file in PACKAGE_DIR.rglob("*.py"):
        content = py_file.read_text(encoding="utf-8", errors="ignore")
        env_vars.update(re.findall(r'os\.getenv\(["\']([A-Z0-9_]+)["\']', content))
        env_vars.update(re.findall(r'os\.environ\[\s*["\']([A-Z0-9_]+)["\']\s*\]', content))
        env_vars.update(re.findall(r'alias=["\']([A-Z0-9_]+)["\']', content))
    return sorted(env_vars)


def verify_against_deployment():
    deployment_vars = [
        "ACCESS_TOKEN_TTL_MINUTES", "ANTHROPIC_API_KEY", "ANTHROPIC_MODEL",
        "API_V1_PREFIX", "APP_DEBUG", "APP_ENV", "APP_NAME",
        "CLIMATESEAL_API_URL", "CORS_ORIGINS", "DASHSCOPE_API_KEY",
        "DASHSCOPE_BASE_URL", "DASHSCOPE_MODEL", "DATABASE_URL",
        "GEMINI_MODEL", "GOOGLE_GEMINI_API_KEY", "LLM_PROVIDER",
        "MAX_CHECKPOINTS", "OPENAI_API_KEY", "OPENAI_BASE_URL",
        "OPENAI_MODEL", "PORT", "SECRET_KEY",
    ]

    code_vars = set(find_env_vars())
    deployment_set = set(deployment_vars)
    missing_in_deployment = sorted(code_vars - deployment_set)
    unused_in_code = sorted(deployment_set - code_vars)

    print("=== ENV VAR VERIFICATION ===")
    print(f"Code references: {len(code_vars)} unique vars")
    print(f"Deployment list has: {len(deployment_vars)} vars")
    print("")
    if missing_in_deployment:
        print(f"MISSING IN DEPLOYMENT ({len(missing_in_deployment)}):")
        for v in missing_in_deployment:
            print(f"  - {v}")
    else:
        print("No missing vars against deployment list.")
    print("")
    if unused_in_code:
        print(f"UNUSED IN CODE ({len(unused_in_code)}):")
        for v in unused_in_code:
            print(f"  - {v}")
    else:
        print("No unused deployment vars.")


if __name__ == "__main__":
    verify_against_deployment()
