import os
import sys
import pytest

# Ensure project root is on sys.path for imports like `core.*`
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from core.context import AnalysisContext  # noqa: E402
from rules.rules_loader import load_rule_book  # noqa: E402

PACKAGE_JSON = """{
  "name": "demo-app",
  "version": "1.0.0",
  "dependencies": {"react": "^18.2.0", "next": "^13.5.0"},
  "devDependencies": {"jest": "^29.6.0"},
  "scripts": {"dev": "next dev", "build": "next build", "test": "jest"}
}"""

README = """# Demo App

[![Build](https://img.shields.io/badge/build-passing-green.svg)](https://ci.example.com)

## Installation

```
npm install
```

## Usage

Run `npm run dev` and open the browser.

## License

MIT
"""


@pytest.fixture(scope="session")
def rule_book():
    return load_rule_book()


@pytest.fixture
def nextjs_context():
    return AnalysisContext.build(
        {
            "package.json": PACKAGE_JSON,
            "README.md": README,
            "src/components/Button.jsx": "export function Button(props) {\n  return <button>{props.label}</button>;\n}\n",
            "src/utils/format.js": "export const format = (value) => value ? String(value) : '';\n",
            "src/__tests__/Button.test.jsx": "test('renders', () => {\n  expect(true).toBe(true);\n});\n",
            "jest.config.js": "module.exports = {};\n",
        }
    )


@pytest.fixture
def empty_context():
    return AnalysisContext.build({})
