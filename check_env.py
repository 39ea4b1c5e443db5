#!/usr/bin/env python3
"""Helper script to check and create the .env file for Feishu and GitHub credentials."""

import sys
from pathlib import Path

SECRET_NAMES = ("FEISHU_APP_SECRET", "GITHUB_TOKEN")

TEMPLATE = """# Feishu bitable source (required)
FEISHU_APP_ID=cli_xxxxxxxx
FEISHU_APP_SECRET=your-app-secret
FEISHU_APP_TOKEN=bascnxxxxxxxx
FEISHU_TABLE_ID=tblxxxxxxxx

# GitHub publish target (required)
GITHUB_TOKEN=ghp_xxxxxxxx
GITHUB_REPO_OWNER=your-org
GITHUB_REPO_NAME=your-map-repo
GITHUB_FILE_PATH=public/markers.csv
# GITHUB_BRANCH=main

# Schedule (Asia/Jakarta by default)
SYNC_SCHEDULE_ENABLED=true
SYNC_SCHEDULE_HOUR=2
SYNC_SCHEDULE_MINUTE=0

# Optional: override select option labels as a JSON object
# OPTION_LABELS={"optJpS4dvk": "Udah Pasang"}

DATA_ROOT=./data
LOG_LEVEL=INFO
"""


def _mask(value: str) -> str:
    if len(value) > 12:
        return value[:6] + "..." + value[-4:]
    return "***"


def main() -> int:
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Outlet Sync Environment Checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"❌ .env file NOT found; created a template at: {env_file}")
        print("⚠️  Please edit .env and add your Feishu and GitHub credentials!")
        return 1

    print(f"✅ Found .env file at: {env_file}")
    print()

    sys.path.insert(0, str(project_root / "src"))
    try:
        from outlet_sync.config import settings
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return 1

    values = {
        "FEISHU_APP_ID": settings.feishu_app_id,
        "FEISHU_APP_SECRET": settings.feishu_app_secret,
        "FEISHU_APP_TOKEN": settings.feishu_app_token,
        "FEISHU_TABLE_ID": settings.feishu_table_id,
        "GITHUB_TOKEN": settings.github_token,
        "GITHUB_REPO_OWNER": settings.github_repo_owner,
        "GITHUB_REPO_NAME": settings.github_repo_name,
    }
    for name, value in values.items():
        if not value:
            print(f"❌ {name} is not set")
        elif name in SECRET_NAMES:
            print(f"✅ {name}={_mask(value)}")
        else:
            print(f"✅ {name}={value}")
    print()

    missing = settings.missing_feishu() + settings.missing_github()
    print("=" * 60)
    if missing:
        print(f"❌ ERROR: missing {', '.join(missing)}")
        print("=" * 60)
        return 1
    print(f"✅ SUCCESS: publishing to {settings.github_repo_owner}/{settings.github_repo_name}/{settings.github_file_path}")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
