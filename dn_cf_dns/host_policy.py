from .models import Host, Policy


def included(host: Host, policy: Policy) -> bool:
    """
    Decides whether a host is eligible for a DNS record.

    A host is eligible when its name ends with the required suffix (if one is
    configured) and it carries every required tag. An empty policy lets every
    host through.
    """
    if policy.required_suffix and not host.name.endswith(policy.required_suffix):
        return False
    return policy.required_tags <= host.tags


def trim_hostname(name: str) -> str:
    """Keeps only the leftmost label of a dotted name."""
    return name.split(".", 1)[0]


def normalize(host: Host, policy: Policy) -> str:
    """
    Maps a host to the name of its DNS record.

    The result is not checked for FQDN well-formedness.
    """
    hostname = host.name
    if policy.trim_suffix:
        hostname = trim_hostname(hostname)
    return f"{hostname}.{policy.append_suffix}".lower()
