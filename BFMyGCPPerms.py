import argparse
import sys

from colorama import Fore, Style, init

from src.BFMyGCPPerms.chunker import DEFAULT_CHUNK_SIZE, chunk, prepare_catalog, validate_chunk_size
from src.BFMyGCPPerms.errors import ConfigurationError
from src.BFMyGCPPerms.probe import ResourceTarget
from src.BFMyGCPPerms.reporter import ResultReporter
from src.BFMyGCPPerms.scanner import DEFAULT_THREADS, ConcurrentScanner
from src.gcp.auth import GCPClient, load_credentials
from src.gcp.catalog import download_gcp_permissions, load_permissions_file


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="BFMyGCPPerms: Brute-force the GCP permissions you have over a project, folder or organization.")

    # Not required here so a missing target is reported like any other configuration error
    scope_group = parser.add_mutually_exclusive_group(required=False)
    scope_group.add_argument('--project', help="Project ID (project name)")
    scope_group.add_argument('--folder', help="Folder ID (folder number)")
    scope_group.add_argument('--organization', help="Organization ID")

    auth_group = parser.add_mutually_exclusive_group(required=False)
    auth_group.add_argument('--sa-credentials-path', help="Path to credentials.json (defaults to $GOOGLE_APPLICATION_CREDENTIALS)")
    auth_group.add_argument('--token', help="Raw access token (defaults to $CLOUDSDK_AUTH_ACCESS_TOKEN)")

    parser.add_argument('--permissions-file', default=None, help="File with the permissions to check, one per line, instead of downloading them")
    parser.add_argument('--threads', default=DEFAULT_THREADS, type=int, help="Number of threads to use")
    parser.add_argument('--size', default=DEFAULT_CHUNK_SIZE, type=int, help="Number of permissions checked per request (max 100)")
    parser.add_argument('--billing-project', type=str, default="", help="Indicate the billing project to use to brute-force permissions")
    parser.add_argument('--proxy', type=str, default="", help="Indicate a proxy to use to connect to GCP for debugging (e.g. 127.0.0.1:8080)")
    parser.add_argument('--verbose', default=False, action="store_true", help="Print the permissions found by each request as they arrive")
    parser.add_argument('--print-invalid-permissions', default=False, action="store_true", help="Print permissions reported as invalid by the API")

    return parser.parse_args(argv)


def main(argv=None, client_factory=GCPClient):
    args = parse_args(argv)

    try:
        target = ResourceTarget.from_options(args.project, args.folder, args.organization)
        validate_chunk_size(args.size)
        credentials = load_credentials(args.sa_credentials_path, args.token)
        client = client_factory(credentials, billing_project=args.billing_project, proxy=args.proxy)
        scanner = ConcurrentScanner(client, args.threads)

        if args.permissions_file:
            permissions = load_permissions_file(args.permissions_file)
        else:
            permissions = download_gcp_permissions()
        catalog = prepare_catalog(permissions)
    except ConfigurationError as e:
        print(f"{Fore.RED}{e}{Style.RESET_ALL}")
        return 1

    print(f"{Fore.GREEN}Gathered {len(catalog)} GCP permissions to check{Style.RESET_ALL}")

    reporter = ResultReporter(verbose=args.verbose, print_invalid_perms=args.print_invalid_permissions)
    scanner.on_batch = reporter.batch_done
    scanner.show_progress = True

    print(f"{Fore.MAGENTA}Brute-forcing permissions over {target}...{Style.RESET_ALL}")
    result = scanner.scan(chunk(catalog, args.size), target)
    reporter.report(result.held, result.errors)
    return 0


if __name__ == "__main__":
    init(autoreset=True)
    sys.exit(main())
