"""
Browser setup for the rendered backends.

The rendered and DOM descent fetchers drive Chromium through Playwright,
which ships without browser binaries. Run ``urlsweep-install-browser``
once after installing the package to download them.
"""
import subprocess
import sys


def install_browser(browser_type: str = "chromium") -> int:
    """
    Run ``playwright install`` for ``browser_type``.

    Returns:
        Process exit code (0 on success)
    """
    print(f"Running 'playwright install {browser_type}'...")
    try:
        result = subprocess.run(
            [sys.executable, "-m", "playwright", "install", browser_type],
            check=True,
            capture_output=True,
            text=True
        )
        if result.stdout:
            print(result.stdout)
        print(f"{browser_type.capitalize()} browser installed successfully.")
        return 0
    except subprocess.CalledProcessError as e:
        print(f"Error installing {browser_type} browser for Playwright: {e}", file=sys.stderr)
        if e.stderr:
            print(e.stderr, file=sys.stderr)
    except FileNotFoundError as e:
        print(f"Error: Could not find Python executable: {e}", file=sys.stderr)

    print(
        "Please run the following command manually:\n"
        f"  python -m playwright install {browser_type}",
        file=sys.stderr
    )
    return 1


def main() -> int:
    return install_browser()


if __name__ == "__main__":
    raise SystemExit(main())
