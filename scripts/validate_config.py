#!/usr/bin/env python3
"""Configuration validation script."""

import sys
from pathlib import Path
from typing import List

import orjson

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tapnotify_app.config.loader import ConfigLoader
from tapnotify_app.config.validation import ConfigValidator, ValidationError


def validate_settings(config_dir: Path) -> List[ValidationError]:
    """Validate settings.yaml merged over the defaults."""
    loader = ConfigLoader.create(config_dir)
    config = loader.merge_config()
    return ConfigValidator.validate_config(config)


def validate_action_document(path: Path) -> List[ValidationError]:
    """Validate an action JSON document."""
    actions = orjson.loads(path.read_bytes())
    return ConfigValidator.validate_actions(actions)


def report(title: str, errors: List[ValidationError]) -> bool:
    if errors:
        print(f"❌ {title}: {len(errors)} validation errors")
        for error in errors:
            print(f"  • {error.field}: {error.message} (value: {error.value})")
        return False
    print(f"✅ {title} is valid")
    return True


def main():
    """Main validation function."""
    config_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else project_root / "config"
    print(f"🔍 Validating TapNotify configuration in {config_dir}...")

    all_valid = True

    try:
        all_valid &= report("settings.yaml", validate_settings(config_dir))
    except Exception as e:
        print(f"❌ Error loading settings: {e}")
        all_valid = False

    for actions_file in sorted(config_dir.glob("*actions*.json")):
        try:
            all_valid &= report(actions_file.name, validate_action_document(actions_file))
        except Exception as e:
            print(f"❌ Error reading {actions_file.name}: {e}")
            all_valid = False

    if all_valid:
        print("\n🎉 All configuration validation passed!")
        sys.exit(0)
    else:
        print("\n❌ Configuration validation failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
