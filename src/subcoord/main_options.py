"""Click option helpers for options that cannot be combined."""
import click


def _check_exclusion(name: str, exclusive_with: list[str], opts: dict) -> None:
    """Raise UsageError if an excluded option was also given.

    Args:
        name: Name of the current option.
        exclusive_with: Names of options that may not appear with it.
        opts: Dictionary of parsed options.

    Raises:
        click.UsageError: If any excluded option is present.
    """
    for other in exclusive_with:
        if other in opts:
            flag = other.replace("_", "-")
            msg = f"Options --{name.replace('_', '-')} and --{flag} are mutually exclusive"
            raise click.UsageError(msg)


class ExclusiveOption(click.Option):
    """Click option that refuses to be combined with the listed options."""

    def __init__(self, *args, **kwargs):
        """Initialize with exclusive_with naming the conflicting options."""
        self.exclusive_with = kwargs.pop("exclusive_with", [])
        super().__init__(*args, **kwargs)

    def handle_parse_result(self, ctx, opts, args):
        """Check exclusion only when this option was given explicitly."""
        if self.name in opts:
            _check_exclusion(self.name, self.exclusive_with, opts)
        return super().handle_parse_result(ctx, opts, args)
