from colorama import Fore, Style
from tqdm import tqdm

from src.BFMyGCPPerms.scanner import ScanError


class ResultReporter:
    def __init__(self, verbose=False, print_invalid_perms=False, color=True):
        self.verbose = verbose
        self.print_invalid_perms = print_invalid_perms
        self.color = color

    def _paint(self, color, text):
        if not self.color:
            return text
        return f"{color}{text}{Style.RESET_ALL}"

    def _error_line(self, scan_error):
        span = f"{scan_error.first} .. {scan_error.last}" if scan_error.batch else "empty"
        return self._paint(Fore.RED, f"Error checking permissions (batch {scan_error.index}: {span}): {scan_error.error}")

    def batch_done(self, index, batch, found, error):
        """
        Per-batch hook for the scanner. Only prints, never touches the results.
        """
        if not self.verbose:
            return
        if error is not None:
            tqdm.write(self._error_line(ScanError(index, batch, error)))
        elif found:
            tqdm.write(f"Found: {sorted(found)}")

    def render(self, held):
        perms = sorted(set(held))
        if not perms:
            return self._paint(Fore.RED, "[-] No permissions found.")
        lines = [self._paint(Fore.GREEN, "[+] Your Permissions:")]
        lines.extend(f"- {perm}" for perm in perms)
        return "\n".join(lines)

    def render_errors(self, errors):
        if not errors:
            return ""

        lines = [self._paint(Fore.YELLOW, f"[!] {len(errors)} batch(es) could not be checked, results may be incomplete:")]
        invalid = []
        api_disabled = False
        for scan_error in errors:
            lines.append(self._error_line(scan_error))
            invalid.extend(scan_error.error.invalid_permissions)
            api_disabled = api_disabled or scan_error.error.api_disabled

        if api_disabled:
            lines.append(self._paint(Fore.YELLOW, "Try to enable the service running: gcloud services enable cloudresourcemanager.googleapis.com"))

        if self.print_invalid_perms and invalid:
            lines.append(self._paint(Fore.YELLOW, "Invalid permissions found:"))
            lines.extend(self._paint(Fore.BLUE, f"- {perm}") for perm in sorted(set(invalid)))

        return "\n".join(lines)

    def report(self, held, errors=()):
        """
        Print the sorted permissions (and the failed batches, if any).

        Returns:
            str: The text that was printed.
        """
        output = self.render(held)
        errors_output = self.render_errors(errors)
        if errors_output:
            output = errors_output + "\n" + output
        print(output)
        return output
