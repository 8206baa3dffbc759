"""Run JavaScript test suites inside a headless browser page.

Test fragments are assembled into one static HTML document, loaded into a
Playwright page, and the in-page test framework's print and completion hooks
are relayed back to this process as stdout lines and an exit code.
"""
