"""
JOURNAL AI TEST SCRIPT - Interactive client
===========================================

PURPOSE:
Command-line client for poking a running Journal AI backend by hand. Type a
journal entry to get it analyzed, collect several entries and ask for a recap,
or send an audio file for transcription.

USAGE:
    python test.py

    Make sure the server is running first: python run.py

COMMANDS:
    <text>              - Analyze the text as one journal entry (also kept for /recap)
    /recap              - Monthly recap of every entry typed so far
    /transcribe <path>  - Upload an audio file and print the transcript
    /models             - Show the model fallback chain
    /health             - Server health check
    /clear              - Forget collected entries
    /quit or /exit      - Exit
"""

import os
import requests


# -----------------------------------------------------------------------------
# CONFIGURATION
# -----------------------------------------------------------------------------
BASE_URL = os.getenv("JOURNAL_API_URL", "http://localhost:3000")
# Entries typed this session; sent together on /recap.
ENTRIES = []


# -----------------------------------------------------------------------------
# UI HELPERS
# -----------------------------------------------------------------------------

def print_header():
    print("\n" + "="*60)
    print("📔 Journal AI - Interactive Client")
    print("="*60)
    print("\nType an entry to analyze it.")
    print("\nCommands:")
    print("  /recap - Recap all entries so far")
    print("  /transcribe <path> - Transcribe an audio file")
    print("  /models - Show model chain")
    print("  /health - Health check")
    print("  /clear - Forget entries")
    print("  /quit - Exit")
    print("="*60 + "\n")


def get_user_input():
    """Get user's input - either a command or an entry."""
    try:
        return input("\nYou: ").strip()
    except (KeyboardInterrupt, EOFError):
        return None


def format_error(response):
    """Pull the server's error message out of a non-200 response."""
    try:
        err = response.json()
        if isinstance(err.get("message"), str):
            return f"❌ {err.get('error', 'Error')}: {err['message']}"
    except ValueError:
        pass
    return f"❌ Error: {response.status_code} - {response.text}"


# -----------------------------------------------------------------------------
# API CALLS
# -----------------------------------------------------------------------------

def analyze_entry(entry):
    """POST /analyze. Model fallback can take a while, hence the long timeout."""
    try:
        response = requests.post(f"{BASE_URL}/analyze", json={"entry": entry}, timeout=120)
        if response.status_code == 200:
            data = response.json()
            return f"[{data.get('nature')}]\n{data.get('analysis', '')}"
        return format_error(response)
    except requests.exceptions.ConnectionError:
        return "❌ Cannot connect to backend. Start it with: python run.py"
    except requests.exceptions.Timeout:
        return "❌ Request timed out. The models may be busy; try again."


def recap_entries():
    if not ENTRIES:
        return "No entries yet. Type a few first."
    try:
        response = requests.post(
            f"{BASE_URL}/recap",
            json={"entries": "\n\n---\n\n".join(ENTRIES)},
            timeout=180,
        )
        if response.status_code == 200:
            return response.json().get("recap", "")
        return format_error(response)
    except requests.exceptions.ConnectionError:
        return "❌ Cannot connect to backend. Start it with: python run.py"
    except requests.exceptions.Timeout:
        return "❌ Request timed out. Try again with fewer entries."


def transcribe_file(path):
    if not os.path.isfile(path):
        return f"❌ No such file: {path}"
    try:
        with open(path, "rb") as f:
            response = requests.post(
                f"{BASE_URL}/transcribe",
                files={"audio": (os.path.basename(path), f)},
                timeout=120,
            )
        if response.status_code == 200:
            return response.json().get("text", "")
        return format_error(response)
    except requests.exceptions.ConnectionError:
        return "❌ Cannot connect to backend. Start it with: python run.py"
    except requests.exceptions.Timeout:
        return "❌ Request timed out."


def get_json(path):
    try:
        response = requests.get(f"{BASE_URL}{path}", timeout=10)
        if response.status_code == 200:
            return response.json()
        return format_error(response)
    except requests.exceptions.ConnectionError:
        return "❌ Cannot connect to backend. Start it with: python run.py"


# -----------------------------------------------------------------------------
# MAIN LOOP
# -----------------------------------------------------------------------------

def main():
    print_header()

    while True:
        user_input = get_user_input()
        if user_input is None or user_input in ["/quit", "/exit"]:
            print("\n👋 Goodbye!")
            break
        if not user_input:
            continue

        if user_input == "/recap":
            print(recap_entries())
        elif user_input.startswith("/transcribe"):
            path = user_input[len("/transcribe"):].strip()
            print(transcribe_file(path) if path else "❌ Usage: /transcribe <path>")
        elif user_input == "/models":
            print(get_json("/models"))
        elif user_input == "/health":
            print(get_json("/health"))
        elif user_input == "/clear":
            ENTRIES.clear()
            print("🔄 Entries cleared.")
        elif user_input.startswith("/"):
            print(f"❌ Unknown command: {user_input}")
        else:
            ENTRIES.append(user_input)
            print(f"🤖 Journal AI: {analyze_entry(user_input)}")


# Run the interactive loop when this file is executed (python test.py).
if __name__ == "__main__":
    main()
