"""Remote management gateway backed by PowerShell remoting."""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence

from dirhealth.domain.entities.directory import (
    Credentials,
    DatabaseState,
    DnsLookup,
    EventRecord,
    FileReplicationState,
    PerformanceSnapshot,
    SecuritySummary,
    ServiceState,
    TimeStatus,
)
from dirhealth.domain.entities.errors import ProbeExecutionError
from dirhealth.domain.gateways.remote_management_gateway import (
    IRemoteManagementGateway,
)
from dirhealth.infrastructure.powershell.runner import (
    PowerShellRunner,
    as_list,
    parse_timestamp,
)

SERVICES_SCRIPT = r"""
$rows = Invoke-Command -ComputerName $Target @Remote -ArgumentList (,$Arguments.names) `
    -ScriptBlock {
        param($names)
        Get-Service -Name $names -ErrorAction SilentlyContinue | ForEach-Object {
            [pscustomobject]@{
                name = $_.Name
                display_name = $_.DisplayName
                status = [string]$_.Status
                start_type = [string]$_.StartType
            }
        }
    }
$rows = @($rows | Select-Object name, display_name, status, start_type)
ConvertTo-Json -InputObject $rows -Depth 4 -Compress
"""

PERFORMANCE_SCRIPT = r"""
$row = Invoke-Command -ComputerName $Target @Remote -ScriptBlock {
    $cpu = (Get-Counter '\Processor(_Total)\% Processor Time' -SampleInterval 1 `
        -MaxSamples 3).CounterSamples | Measure-Object CookedValue -Average
    $os = Get-CimInstance Win32_OperatingSystem
    $ntds = Get-ItemProperty 'HKLM:\SYSTEM\CurrentControlSet\Services\NTDS\Parameters'
    $drive = Split-Path -Qualifier $ntds.'DSA Database file'
    $disk = Get-CimInstance Win32_LogicalDisk -Filter "DeviceID='$drive'"
    $counters = @{}
    foreach ($path in '\NTDS\LDAP Searches/sec', '\NTDS\LDAP Client Sessions',
                      '\NTDS\DRA Inbound Bytes Total/sec', '\NTDS\DS Threads in Use') {
        try { $counters[$path] = (Get-Counter $path).CounterSamples[0].CookedValue }
        catch { }
    }
    [pscustomobject]@{
        cpu_percent = $cpu.Average
        memory_percent = (1 - $os.FreePhysicalMemory / $os.TotalVisibleMemorySize) * 100
        disk_free_percent = if ($disk.Size) { $disk.FreeSpace / $disk.Size * 100 } else { $null }
        database_volume = $drive
        counters = $counters
    }
}
$row | Select-Object cpu_percent, memory_percent, disk_free_percent, database_volume, counters |
    ConvertTo-Json -Depth 4 -Compress
"""

TIME_SCRIPT = r"""
$row = Invoke-Command -ComputerName $Target @Remote -ScriptBlock {
    $service = Get-Service W32Time -ErrorAction SilentlyContinue
    $running = $service -and $service.Status -eq 'Running'
    $source = $null
    $offset = $null
    $lastSync = $null
    if ($running) {
        $source = (w32tm /query /source | Out-String).Trim()
        $status = w32tm /query /status
        $syncLine = $status | Where-Object { $_ -match 'Last Successful Sync Time:\s*(.+)$' }
        if ($syncLine -and ($syncLine | Select-Object -First 1) -match ':\s*(\S.+)$') {
            try { $lastSync = [datetime]::Parse($Matches[1]) } catch { }
        }
        $peer = ($source -split ',')[0]
        if ($peer -and $peer -notmatch 'Clock|Provider') {
            $chart = w32tm /stripchart /computer:$peer /samples:1 /dataonly
            $line = $chart | Where-Object { $_ -match ',\s*([+-]\d+\.\d+)s' } | Select-Object -Last 1
            if ($line -match ',\s*([+-]\d+\.\d+)s') { $offset = [double]$Matches[1] }
        }
    }
    [pscustomobject]@{
        service_running = [bool]$running
        source = $source
        offset_seconds = $offset
        last_sync = $lastSync
    }
}
[pscustomobject]@{
    service_running = $row.service_running
    source = $row.source
    offset_seconds = $row.offset_seconds
    last_sync = ConvertTo-IsoDate $row.last_sync
} | ConvertTo-Json -Compress
"""

SYSVOL_SCRIPT = r"""
$row = Invoke-Command -ComputerName $Target @Remote -ScriptBlock {
    $engine = 'DFSR'
    $service = Get-Service DFSR -ErrorAction SilentlyContinue
    if (-not $service -or $service.Status -ne 'Running') {
        $frs = Get-Service NtFrs -ErrorAction SilentlyContinue
        if ($frs -and $frs.Status -eq 'Running') { $engine = 'NtFrs'; $service = $frs }
    }
    $shares = @(Get-SmbShare -ErrorAction SilentlyContinue | ForEach-Object { $_.Name })
    $backlog = $null
    if ($engine -eq 'DFSR') {
        try {
            $backlog = 0
            Get-DfsrConnection -GroupName 'Domain System Volume' -ErrorAction Stop |
                Where-Object { $_.DestinationComputerName -eq $env:COMPUTERNAME } |
                ForEach-Object {
                    $backlog += @(Get-DfsrBacklog -GroupName 'Domain System Volume' `
                        -FolderName 'SYSVOL Share' -SourceComputerName $_.SourceComputerName `
                        -DestinationComputerName $env:COMPUTERNAME -ErrorAction Stop).Count
                }
        } catch { $backlog = $null }
    }
    $last = Get-WinEvent -LogName 'DFS Replication' -MaxEvents 1 -ErrorAction SilentlyContinue `
        -FilterXPath '*[System[(EventID=4602 or EventID=4604 or EventID=5004)]]'
    [pscustomobject]@{
        engine = $engine
        service_running = [bool]($service -and $service.Status -eq 'Running')
        sysvol_shared = $shares -contains 'SYSVOL'
        netlogon_shared = $shares -contains 'NETLOGON'
        backlog_count = $backlog
        last_replication = if ($last) { $last.TimeCreated } else { $null }
    }
}
[pscustomobject]@{
    engine = $row.engine
    service_running = $row.service_running
    sysvol_shared = $row.sysvol_shared
    netlogon_shared = $row.netlogon_shared
    backlog_count = $row.backlog_count
    last_replication = ConvertTo-IsoDate $row.last_replication
} | ConvertTo-Json -Compress
"""

DATABASE_SCRIPT = r"""
$row = Invoke-Command -ComputerName $Target @Remote -ScriptBlock {
    $ntds = Get-ItemProperty 'HKLM:\SYSTEM\CurrentControlSet\Services\NTDS\Parameters'
    $path = $ntds.'DSA Database file'
    $logPath = $ntds.'Database log files path'
    $exists = [bool]($path -and (Test-Path $path))
    $size = if ($exists) { (Get-Item $path).Length / 1MB } else { $null }
    $whitespace = $null
    $event = Get-WinEvent -LogName 'Directory Service' -MaxEvents 1 -ErrorAction SilentlyContinue `
        -FilterXPath '*[System[(EventID=1646)]]'
    if ($event -and $event.Message -match 'Free hard disk space \(megabytes\):\s*(\d+)') {
        $whitespace = [double]$Matches[1]
    }
    $logFree = $null
    if ($logPath) {
        $drive = Split-Path -Qualifier $logPath
        $disk = Get-CimInstance Win32_LogicalDisk -Filter "DeviceID='$drive'"
        if ($disk.Size) { $logFree = $disk.FreeSpace / $disk.Size * 100 }
    }
    [pscustomobject]@{
        database_path = $path
        database_exists = $exists
        database_size_mb = $size
        whitespace_mb = $whitespace
        log_path = $logPath
        log_volume_free_percent = $logFree
    }
}
$backup = $null
try {
    $domain = Get-ADDomain -Server $Target @Remote
    $backup = (Get-ADReplicationAttributeMetadata -Object $domain.DistinguishedName `
        -Server $Target -Properties dSASignature @Remote).LastOriginatingChangeTime
} catch { }
[pscustomobject]@{
    database_path = $row.database_path
    database_exists = $row.database_exists
    database_size_mb = $row.database_size_mb
    whitespace_mb = $row.whitespace_mb
    log_path = $row.log_path
    log_volume_free_percent = $row.log_volume_free_percent
    last_backup = ConvertTo-IsoDate $backup
} | ConvertTo-Json -Compress
"""

EVENTS_SCRIPT = r"""
$rows = Invoke-Command -ComputerName $Target @Remote -ArgumentList $Arguments -ScriptBlock {
    param($options)
    $start = (Get-Date).AddHours(-[int]$options.window_hours)
    foreach ($log in $options.logs) {
        Get-WinEvent -FilterHashtable @{ LogName = $log; Level = 1, 2, 3; StartTime = $start } `
            -MaxEvents ([int]$options.max_events) -ErrorAction SilentlyContinue |
            ForEach-Object {
                [pscustomobject]@{
                    log_name = $log
                    level = switch ($_.Level) { 1 { 'Critical' } 2 { 'Error' } default { 'Warning' } }
                    event_id = $_.Id
                    source = $_.ProviderName
                    time_created = $_.TimeCreated
                    message = if ($_.Message) { $_.Message.Split("`n")[0] } else { $null }
                }
            }
    }
}
$rows = @($rows | ForEach-Object {
    [pscustomobject]@{
        log_name = $_.log_name
        level = $_.level
        event_id = $_.event_id
        source = $_.source
        time_created = ConvertTo-IsoDate $_.time_created
        message = $_.message
    }
})
ConvertTo-Json -InputObject $rows -Depth 3 -Compress
"""

SECURITY_SCRIPT = r"""
$row = Invoke-Command -ComputerName $Target @Remote -ArgumentList $Arguments -ScriptBlock {
    param($options)
    $start = (Get-Date).AddHours(-[int]$options.window_hours)
    function Count-Events($ids) {
        @(Get-WinEvent -FilterHashtable @{ LogName = 'Security'; Id = $ids; StartTime = $start } `
            -ErrorAction SilentlyContinue).Count
    }
    $locked = @()
    try { $locked = @(Search-ADAccount -LockedOut | ForEach-Object { $_.SamAccountName }) } catch { }
    [pscustomobject]@{
        account_lockouts = Count-Events 4740
        failed_authentications = Count-Events @(4625, 4771)
        ntlm_authentications = Count-Events 4776
        kerberos_authentications = Count-Events 4768
        locked_accounts = $locked
    }
}
$row | Select-Object account_lockouts, failed_authentications, ntlm_authentications,
    kerberos_authentications, locked_accounts | ConvertTo-Json -Depth 3 -Compress
"""

DNS_SCRIPT = r"""
$watch = [Diagnostics.Stopwatch]::StartNew()
$answers = @(Resolve-DnsName -Name $Arguments.name -Type $Arguments.type -Server $Target `
    -DnsOnly -QuickTimeout -ErrorAction SilentlyContinue)
$watch.Stop()
$records = @($answers | Where-Object { $_.Section -eq 'Answer' } | ForEach-Object {
    if ($_.NameTarget) { $_.NameTarget } elseif ($_.IPAddress) { $_.IPAddress }
})
[pscustomobject]@{
    records = $records
    query_time_ms = $watch.Elapsed.TotalMilliseconds
} | ConvertTo-Json -Depth 3 -Compress
"""


def _float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


class PowerShellRemoteManagementGateway(IRemoteManagementGateway):
    """Remote management queries executed through PowerShell remoting."""

    def __init__(self, runner: PowerShellRunner) -> None:
        self._runner = runner

    async def _query(
        self,
        script: str,
        server: str,
        operation: str,
        *,
        credentials: Optional[Credentials],
        timeout: float,
        arguments: Optional[Dict[str, Any]] = None,
    ) -> Any:
        return await self._runner.run(
            script,
            operation=f"{operation} on {server}",
            timeout=timeout,
            target=server,
            arguments=arguments,
            credentials=credentials,
        )

    def _require_object(self, payload: Any, operation: str) -> Dict[str, Any]:
        if not isinstance(payload, dict):
            raise ProbeExecutionError(f"{operation} returned no data")
        return payload

    async def get_services(
        self,
        server: str,
        names: Sequence[str],
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> List[ServiceState]:
        payload = await self._query(
            SERVICES_SCRIPT,
            server,
            "service query",
            credentials=credentials,
            timeout=timeout,
            arguments={"names": list(names)},
        )
        return [
            ServiceState(
                name=row["name"],
                status=str(row.get("status") or "Unknown"),
                start_type=str(row.get("start_type") or "Unknown"),
                display_name=row.get("display_name"),
            )
            for row in as_list(payload)
        ]

    async def get_performance(
        self,
        server: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> PerformanceSnapshot:
        payload = self._require_object(
            await self._query(
                PERFORMANCE_SCRIPT,
                server,
                "performance query",
                credentials=credentials,
                timeout=timeout,
            ),
            "performance query",
        )
        counters = payload.get("counters") or {}
        return PerformanceSnapshot(
            cpu_percent=_float(payload.get("cpu_percent")),
            memory_percent=_float(payload.get("memory_percent")),
            disk_free_percent=_float(payload.get("disk_free_percent")),
            database_volume=payload.get("database_volume"),
            counters={name: float(value) for name, value in counters.items()},
        )

    async def get_time_status(
        self,
        server: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> TimeStatus:
        payload = self._require_object(
            await self._query(
                TIME_SCRIPT,
                server,
                "time service query",
                credentials=credentials,
                timeout=timeout,
            ),
            "time service query",
        )
        return TimeStatus(
            offset_seconds=_float(payload.get("offset_seconds")),
            source=payload.get("source"),
            service_running=bool(payload.get("service_running")),
            last_sync=parse_timestamp(payload.get("last_sync")),
        )

    async def get_file_replication_state(
        self,
        server: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> FileReplicationState:
        payload = self._require_object(
            await self._query(
                SYSVOL_SCRIPT,
                server,
                "SYSVOL query",
                credentials=credentials,
                timeout=timeout,
            ),
            "SYSVOL query",
        )
        backlog = payload.get("backlog_count")
        return FileReplicationState(
            service_running=bool(payload.get("service_running")),
            sysvol_shared=bool(payload.get("sysvol_shared")),
            netlogon_shared=bool(payload.get("netlogon_shared")),
            backlog_count=None if backlog is None else int(backlog),
            last_replication=parse_timestamp(payload.get("last_replication")),
            engine=payload.get("engine") or "DFSR",
        )

    async def get_database_state(
        self,
        server: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> DatabaseState:
        payload = self._require_object(
            await self._query(
                DATABASE_SCRIPT,
                server,
                "database query",
                credentials=credentials,
                timeout=timeout,
            ),
            "database query",
        )
        return DatabaseState(
            database_path=payload.get("database_path"),
            database_exists=bool(payload.get("database_exists")),
            database_size_mb=_float(payload.get("database_size_mb")),
            whitespace_mb=_float(payload.get("whitespace_mb")),
            log_path=payload.get("log_path"),
            log_volume_free_percent=_float(payload.get("log_volume_free_percent")),
            last_backup=parse_timestamp(payload.get("last_backup")),
        )

    async def get_events(
        self,
        server: str,
        logs: Sequence[str],
        *,
        window_hours: int,
        max_events: int,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> List[EventRecord]:
        payload = await self._query(
            EVENTS_SCRIPT,
            server,
            "event log query",
            credentials=credentials,
            timeout=timeout,
            arguments={
                "logs": list(logs),
                "window_hours": window_hours,
                "max_events": max_events,
            },
        )
        events = [
            EventRecord(
                log_name=row["log_name"],
                level=row.get("level") or "Warning",
                event_id=int(row.get("event_id") or 0),
                source=row.get("source") or "",
                time_created=parse_timestamp(row.get("time_created")),
                message=row.get("message"),
            )
            for row in as_list(payload)
        ]
        return events[:max_events]

    async def get_security_summary(
        self,
        server: str,
        *,
        window_hours: int,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> SecuritySummary:
        payload = self._require_object(
            await self._query(
                SECURITY_SCRIPT,
                server,
                "security event query",
                credentials=credentials,
                timeout=timeout,
                arguments={"window_hours": window_hours},
            ),
            "security event query",
        )
        return SecuritySummary(
            account_lockouts=int(payload.get("account_lockouts") or 0),
            failed_authentications=int(payload.get("failed_authentications") or 0),
            ntlm_authentications=int(payload.get("ntlm_authentications") or 0),
            kerberos_authentications=int(payload.get("kerberos_authentications") or 0),
            window_hours=window_hours,
            locked_accounts=[
                str(name) for name in as_list(payload.get("locked_accounts"))
            ],
        )

    async def resolve_dns_record(
        self,
        server: str,
        name: str,
        record_type: str,
        *,
        credentials: Optional[Credentials] = None,
        timeout: float,
    ) -> DnsLookup:
        started = time.perf_counter()
        payload = await self._query(
            DNS_SCRIPT,
            server,
            f"DNS {record_type} query for {name}",
            credentials=credentials,
            timeout=timeout,
            arguments={"name": name, "type": record_type},
        )
        payload = payload if isinstance(payload, dict) else {}
        query_time = payload.get("query_time_ms")
        if query_time is None:
            query_time = (time.perf_counter() - started) * 1000
        return DnsLookup(
            name=name,
            record_type=record_type,
            records=[str(record) for record in as_list(payload.get("records"))],
            query_time_ms=round(float(query_time), 2),
        )
