from dataclasses import dataclass

import structlog

from .errors import ReconcileError, UpstreamError
from .host_policy import included, normalize
from .models import DesiredRecord

RECORD_TTL = 1  # Cloudflare "automatic"
RECORD_PROXIED = False


@dataclass
class SyncSummary:
    eligible_hosts: int = 0
    created: int = 0
    updated: int = 0
    pruned: int = 0


def resolve_zone(store, zone_name="", zone_id="", need_name=False):
    """
    Resolves the Cloudflare zone to operate on.

    A pre-resolved ``zone_id`` is used as-is. When ``need_name`` is set its
    name is fetched from the provider, so a configured ``zone_name`` never
    stands in for the real one. Otherwise ``zone_name`` is looked up.

    Returns:
        tuple: ``(zone_id, zone_name)``.

    Raises:
        NotFoundError: If no zone is named ``zone_name``.
        UpstreamError: On API failure.
    """
    if zone_id:
        if need_name:
            zone_name = store.get_zone_name(zone_id)
        return zone_id, zone_name
    return store.find_zone_id_by_name(zone_name), zone_name


class Reconciler:
    """
    Brings the A records of one zone in line with the host directory.

    Hosts are fetched, filtered and mapped to record names, then each
    desired record is upserted in directory order. When the policy asks for
    it, records under the managed suffix that no host maps to are pruned.
    The first failure aborts the run.
    """

    def __init__(self, directory, store, policy, log=None):
        self.directory = directory
        self.store = store
        self.policy = policy
        self.log = log if log is not None else structlog.get_logger()

    def fetch_hosts(self):
        """Pages through the whole host directory, following each page's cursor."""
        hosts = []
        cursor = ""
        seen_cursors = {cursor}
        while True:
            page = self.directory.list_hosts(cursor)
            hosts.extend(page.hosts)
            if not page.has_next_page:
                return hosts
            if page.next_cursor in seen_cursors:
                raise UpstreamError(
                    f"host directory pagination did not advance (cursor {page.next_cursor!r} already used)"
                )
            cursor = page.next_cursor
            seen_cursors.add(cursor)

    def plan(self, hosts):
        """
        Returns the ordered desired records and the set of their names.

        Hosts mapping to the same name are all kept, in order, so the last
        one wins when they are upserted.
        """
        desired = []
        desired_names = set()
        for host in hosts:
            if not included(host, self.policy):
                continue
            name = normalize(host, self.policy)
            self.log.debug(
                "Mapped host to DNS name",
                host_id=host.id,
                initial_hostname=host.name,
                final_hostname=name,
                ip_address=host.address,
            )
            desired.append(DesiredRecord(name=name, address=host.address, host_id=host.id))
            desired_names.add(name)
        return desired, desired_names

    def upsert(self, zone_id, record):
        """
        Creates or updates the A record for ``record.name``.

        Only the first existing record with the name is updated; further
        duplicates are left alone.

        Returns:
            str: ``"created"`` or ``"updated"``.
        """
        try:
            existing = self.store.list_records(zone_id, name=record.name)
            if not existing:
                self.log.info("Creating Cloudflare DNS record", final_hostname=record.name, ip_address=record.address)
                self.store.create_record(zone_id, record.name, record.address, RECORD_TTL, RECORD_PROXIED)
                return "created"

            target = existing[0]
            self.log.info(
                "Updating Cloudflare DNS record",
                final_hostname=record.name,
                ip_address=record.address,
                record_id=target.id,
            )
            self.store.update_record(zone_id, target.id, record.name, record.address, RECORD_TTL, RECORD_PROXIED)
            return "updated"
        except UpstreamError as e:
            raise ReconcileError(
                f"failed to upsert record {record.name} -> {record.address} for host {record.host_id}: {e}",
                phase="upsert",
                record_name=record.name,
                address=record.address,
                host_id=record.host_id,
            ) from e

    def prune(self, zone_id, desired_names):
        """Deletes managed-suffix records no desired name accounts for. Returns the count deleted."""
        self.log.info("Pruning Cloudflare DNS records", zone_id=zone_id)
        pruned = 0
        for record in self.store.list_records(zone_id):
            if not record.name.endswith(self.policy.append_suffix):
                continue
            if record.name in desired_names:
                continue

            self.log.info("Pruning stale DNS record", record_id=record.id, record_name=record.name)
            try:
                self.store.delete_record(zone_id, record.id)
            except UpstreamError as e:
                raise ReconcileError(
                    f"error during host prune iteration: failed to delete record {record.name} ({record.id}): {e}",
                    phase="prune",
                    record_name=record.name,
                    record_id=record.id,
                ) from e
            pruned += 1
        return pruned

    def run(self, zone_id):
        summary = SyncSummary()

        self.log.info(
            "Collecting eligible Defined.net Managed Nebula hosts",
            required_suffix=self.policy.required_suffix,
            required_tags=",".join(sorted(self.policy.required_tags)),
        )
        hosts = self.fetch_hosts()
        desired, desired_names = self.plan(hosts)
        summary.eligible_hosts = len(desired)
        self.log.info("Found eligible hosts", eligible_hosts=summary.eligible_hosts, total_hosts=len(hosts))

        for record in desired:
            if self.upsert(zone_id, record) == "created":
                summary.created += 1
            else:
                summary.updated += 1

        if self.policy.prune:
            summary.pruned = self.prune(zone_id, desired_names)

        self.log.info(
            "Defined.net to Cloudflare Sync Summary",
            eligible_hosts=summary.eligible_hosts,
            created=summary.created,
            updated=summary.updated,
            pruned=summary.pruned,
        )
        return summary


def sync_dns(config, directory, store, log=None):
    """
    Runs one full sync: resolve the zone, build the policy, reconcile.

    Returns:
        SyncSummary: Counts of what the run did.
    """
    log = log if log is not None else structlog.get_logger()
    zone_id, zone_name = resolve_zone(
        store,
        zone_name=config.cloudflare.zone_name,
        zone_id=config.cloudflare.zone_id,
        need_name=not config.append_suffix,
    )
    if zone_name:
        log.info("Found Cloudflare zone ID", zone_id=zone_id, zone_name=zone_name)
    else:
        log.info("Using configured Cloudflare zone ID", zone_id=zone_id)

    policy = config.build_policy(zone_name)
    return Reconciler(directory, store, policy, log=log).run(zone_id)
