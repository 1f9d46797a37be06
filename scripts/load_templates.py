#!/usr/bin/env python3
"""
Load checklist templates from a JSON file into the template store.
The file holds one template object or a list of them.

Usage: python3 scripts/load_templates.py templates.json
Uses DATABASE_PATH from the environment like the app does.
"""
import json
import sys

from servfix import create_app
from servfix.checklist import TemplateError
from servfix.services import template_store


def load_templates(path):
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = [data]

    saved = rejected = 0
    for template_data in data:
        label = template_data.get('id') or template_data.get('name')
        try:
            template = template_store.save_template(template_data, user_name='load_templates')
        except TemplateError as e:
            rejected += 1
            print(f"  REJECTED {label}")
            for problem in e.problems:
                print(f"    - {problem}")
            continue
        saved += 1
        print(f"  {template.id} | {template.name} | {sum(1 for _ in template.iter_items())} items")
    return saved, rejected


def main():
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)

    app = create_app()
    with app.app_context():
        print("=== LOADING TEMPLATES ===\n")
        saved, rejected = load_templates(sys.argv[1])
        print(f"\nSaved: {saved}, rejected: {rejected}")
    sys.exit(1 if rejected else 0)


if __name__ == '__main__':
    main()
