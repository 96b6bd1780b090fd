"""Directory gateway backed by the ActiveDirectory PowerShell module."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from dirhealth.domain.entities.directory import (
    Credentials,
    FsmoRole,
    ReplicationFailure,
    ReplicationPartner,
    TrustRelationship,
)
from dirhealth.domain.entities.errors import ProbeExecutionError
from dirhealth.domain.gateways.directory_gateway import (
    IDirectoryGateway,
    ITopologyGateway,
)
from dirhealth.infrastructure.powershell.runner import (
    PowerShellRunner,
    as_list,
    parse_timestamp,
)
from dirhealth.shared import get_logger

logger = get_logger(__name__)

DISCOVERY_SCRIPT = r"""
Import-Module ActiveDirectory
$servers = @(Get-ADDomainController -Filter * @Remote | ForEach-Object { $_.HostName })
ConvertTo-Json -InputObject $servers -Compress
"""

DOMAIN_SCRIPT = r"""
Import-Module ActiveDirectory
ConvertTo-Json -InputObject (Get-ADDomain @Remote).DNSRoot -Compress
"""

PARTNERS_SCRIPT = r"""
Import-Module ActiveDirectory
$rows = @(Get-ADReplicationPartnerMetadata -Target $Target -Scope Server @Remote |
    ForEach-Object {
        [pscustomobject]@{
            partner = (($_.Partner -split ',')[1] -replace '^CN=', '')
            partition = $_.Partition
            last_success = ConvertTo-IsoDate $_.LastReplicationSuccess
            last_attempt = ConvertTo-IsoDate $_.LastReplicationAttempt
            consecutive_failures = $_.ConsecutiveReplicationFailures
            last_result = $_.LastReplicationResult
        }
    })
ConvertTo-Json -InputObject $rows -Depth 3 -Compress
"""

FAILURES_SCRIPT = r"""
Import-Module ActiveDirectory
$rows = @(Get-ADReplicationFailure -Target $Target @Remote | ForEach-Object {
    [pscustomobject]@{
        partner = (($_.Partner -split ',')[1] -replace '^CN=', '')
        failure_count = $_.FailureCount
        first_failure_time = ConvertTo-IsoDate $_.FirstFailureTime
        last_error = $_.LastError
    }
})
ConvertTo-Json -InputObject $rows -Depth 3 -Compress
"""

ROLES_SCRIPT = r"""
Import-Module ActiveDirectory
$forest = Get-ADForest @Remote
$domain = Get-ADDomain @Remote
[pscustomobject]@{
    SchemaMaster = $forest.SchemaMaster
    DomainNamingMaster = $forest.DomainNamingMaster
    PDCEmulator = $domain.PDCEmulator
    RIDMaster = $domain.RIDMaster
    InfrastructureMaster = $domain.InfrastructureMaster
} | ConvertTo-Json -Compress
"""

TRUSTS_SCRIPT = r"""
Import-Module ActiveDirectory
$rows = @(Get-ADTrust -Filter * -Server $Target @Remote | ForEach-Object {
    $output = nltest /server:$Target /sc_verify:$($_.Name) 2>&1 | Out-String
    $verified = $LASTEXITCODE -eq 0
    [pscustomobject]@{
        name = $_.Name
        direction = [string]$_.Direction
        trust_type = [string]$_.TrustType
        verified = $verified
        error = if ($verified) { $null } else { ($output.Trim() -split "`n")[-1].Trim() }
    }
})
ConvertTo-Json -InputObject $rows -Depth 3 -Compress
"""


class ActiveDirectoryGateway(ITopologyGateway, IDirectoryGateway):
    """Topology discovery and directory metadata through PowerShell."""

    def __init__(self, runner: PowerShellRunner) -> None:
        self._runner = runner

    async def discover_servers(
        self, *, credentials: Optional[Credentials] = None, timeout: float
    ) -> List[str]:
        payload = await self._runner.run(
            DISCOVERY_SCRIPT,
            operation="domain controller discovery",
            timeout=timeout,
            credentials=credentials,
        )
        servers = [str(name) for name in as_list(payload) if name]
        logger.info("directory.discovery.completed", servers=len(servers))
        return servers

    async def get_domain_name(
        self, *, credentials: Optional[Credentials] = None, timeout: float
    ) -> str:
        payload = await self._runner.run(
            DOMAIN_SCRIPT,
            operation="domain lookup",
            timeout=timeout,
            credentials=credentials,
        )
        if not payload:
            raise ProbeExecutionError("domain lookup returned no name")
        return str(payload)

    async def get_replication_partners(
        self,
        server: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> List[ReplicationPartner]:
        payload = await self._runner.run(
            PARTNERS_SCRIPT,
            operation=f"replication partner query on {server}",
            timeout=timeout,
            target=server,
            credentials=credentials,
        )
        return [
            ReplicationPartner(
                partner=row["partner"],
                partition=row.get("partition"),
                last_success=parse_timestamp(row.get("last_success")),
                last_attempt=parse_timestamp(row.get("last_attempt")),
                consecutive_failures=int(row.get("consecutive_failures") or 0),
                last_result=int(row.get("last_result") or 0),
            )
            for row in as_list(payload)
        ]

    async def get_replication_failures(
        self,
        server: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> List[ReplicationFailure]:
        payload = await self._runner.run(
            FAILURES_SCRIPT,
            operation=f"replication failure query on {server}",
            timeout=timeout,
            target=server,
            credentials=credentials,
        )
        return [
            ReplicationFailure(
                partner=row["partner"],
                failure_count=int(row.get("failure_count") or 0),
                first_failure_time=parse_timestamp(row.get("first_failure_time")),
                last_error=row.get("last_error"),
            )
            for row in as_list(payload)
        ]

    async def get_role_holders(
        self, *, credentials: Optional[Credentials] = None, timeout: float
    ) -> Dict[FsmoRole, Optional[str]]:
        payload: Any = await self._runner.run(
            ROLES_SCRIPT,
            operation="role holder query",
            timeout=timeout,
            credentials=credentials,
        )
        if not isinstance(payload, dict):
            raise ProbeExecutionError("role holder query returned no data")
        return {role: payload.get(role.value) or None for role in FsmoRole}

    async def get_trusts(
        self,
        server: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> List[TrustRelationship]:
        payload = await self._runner.run(
            TRUSTS_SCRIPT,
            operation=f"trust query on {server}",
            timeout=timeout,
            target=server,
            credentials=credentials,
        )
        return [
            TrustRelationship(
                name=row["name"],
                direction=row.get("direction") or "Unknown",
                trust_type=row.get("trust_type") or "Unknown",
                verified=row.get("verified"),
                error=row.get("error"),
            )
            for row in as_list(payload)
        ]
