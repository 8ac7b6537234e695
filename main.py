import sys
import threading
import time
import uuid

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from models.search_errors import AllProvidersExhaustedError
from models.search_response import SearchResponse
from orchestrator.core import SearchOrchestrator
from orchestrator.factory import create_search_orchestrator_from_env

MAX_CLI_CONTEXT = 5


def show_loading_animation(stop_event: threading.Event) -> None:
    """
    Show a loading animation in the console.

    Args:
        stop_event: A threading.Event that will be set to stop the animation
    """
    while not stop_event.is_set():
        for char in '|/-\\':
            if stop_event.is_set():
                break
            sys.stdout.write(f'\r\033[93mSearching {char}\033[0m')
            sys.stdout.flush()
            time.sleep(0.1)

    sys.stdout.write('\r' + ' ' * 20 + '\r')
    sys.stdout.flush()


def print_response(response: SearchResponse) -> None:
    origin = "cache" if response.from_cache else response.provider
    print(f"\n{response.total_results} results for '{response.query}' "
          f"({origin}, {response.search_time_ms} ms)\n")
    for idx, result in enumerate(response.results, start=1):
        print(f"[{idx}] {result.title}")
        print(f"    {result.url}")
        if result.snippet:
            print(f"    {result.snippet[:160]}")
    print()


def print_help() -> None:
    print("\n=== Available Commands ===")
    print("help            - Show this help message")
    print("suggest <query> - Suggest related searches")
    print("stats           - Show cache statistics")
    print("metrics         - Show search metrics summary")
    print("clear           - Clear the search cache")
    print("exit/quit       - Exit the program")
    print("Anything else is searched, with your previous queries as context.\n")


def run_search(orchestrator: SearchOrchestrator, query: str, context: list[str],
               conversation_id: str) -> None:
    stop_animation = threading.Event()
    loading_thread = threading.Thread(target=show_loading_animation, args=(stop_animation,))
    loading_thread.daemon = True
    loading_thread.start()

    try:
        response = orchestrator.search_sync(query, context, conversation_id)
    finally:
        stop_animation.set()
        loading_thread.join()

    print_response(response)


def main():
    try:
        orchestrator = create_search_orchestrator_from_env()
    except Exception as e:
        print(f"Error initializing search: {str(e)}")
        return

    orchestrator.start()
    conversation_id = f"cli-{uuid.uuid4()}"
    context: list[str] = []

    print("\n=== Web Search ===")
    print("Type 'exit' to quit, or 'help' for commands\n")

    try:
        while True:
            try:
                user_input = input("Search: ").strip()

                if not user_input:
                    continue

                command = user_input.lower()

                if command in ('exit', 'quit'):
                    print("\nGoodbye!")
                    break

                if command == 'help':
                    print_help()
                    continue

                if command == 'stats':
                    print("\n=== Cache Statistics ===")
                    for key, value in orchestrator.get_cache_stats().items():
                        print(f"{key}: {value}")
                    print()
                    continue

                if command == 'metrics':
                    print("\n=== Search Metrics ===")
                    for key, value in orchestrator.get_metrics_summary().items():
                        print(f"{key}: {value}")
                    print()
                    continue

                if command == 'clear':
                    orchestrator.clear_cache()
                    print("Cache cleared.\n")
                    continue

                if command.startswith('suggest '):
                    query = user_input[len('suggest '):].strip()
                    for suggestion in orchestrator.get_search_suggestions(query, context):
                        print(f"  - {suggestion}")
                    print()
                    continue

                run_search(orchestrator, user_input, context, conversation_id)
                context = (context + [user_input])[-MAX_CLI_CONTEXT:]

            except KeyboardInterrupt:
                print("\nExiting...")
                break
            except AllProvidersExhaustedError as e:
                print(f"\nSearch failed: {str(e)}\n")
                continue
    finally:
        orchestrator.shutdown()


if __name__ == "__main__":
    main()
