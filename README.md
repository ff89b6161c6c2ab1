# sitewarden

sitewarden caps how long you spend on chosen websites each day. It watches
network traffic, counts the time spent on each listed domain whose addresses
it sees, and once a domain goes over its time limit it drops traffic with
`iptables` / `ip6tables`. Usage counters and blocks are reset at a daily reset
time, 15:16 local time.

It runs on Linux only and needs root: it opens a raw packet socket and edits
firewall rules.

## Installing

```
pip install .
```

## Running the blocker

```
sudo sitewarden
```

Options:

- `--domains-file PATH` – the domain list (default `domains.bin`),
- `--socket PATH` – the Unix socket for reload requests (default `/tmp/my_socket`),
- `--log PATH` – the event log (default `log.txt`; truncated at start).

On start the daemon loads the domain list, applies the daily reset, and
resolves every domain to its IPv4 and IPv6 addresses. If the list is empty or
missing it reports "Failed to resolve domains." and exits with status 1.

It then listens on the Unix socket for reload requests and sniffs every
Ethernet frame. For each IPv4 or IPv6 packet whose source address belongs to a
listed domain it writes `IP <address> found in domain <domain>` to the event
log and adds the time since the previous packet from that domain to the
domain's total. When the total goes over the domain's limit, the domain is
marked blocked and the address the packet came from is dropped. On the next
reload, every address of a blocked domain is dropped.

Progress messages go to standard error. Press Ctrl+C to stop; all firewall
rules for the listed domains are removed on exit.

## Adding a domain

```
sitewarden-add example.com 600
```

This appends `example.com` with a limit of 600 seconds to the domain list and
sends `domains_file_update` over the socket so a running daemon reloads the
list. `--domains-file` and `--socket` work as for the daemon. If no daemon is
listening, the domain is still saved and a warning is printed.

## What it does not do

There is no command to remove a domain, change a limit or change the daily
reset time; the domain list can only be edited from Python. The state in
memory (time spent, blocks) is not written back to the domain list by the
daemon.

## Using it from Python

- `sitewarden.storage`: `load_domains` / `save_domains` read and write the
  domain list file; `encode_domains` / `decode_domains` work on bytes and raise
  `ValueError` on malformed data.
- `sitewarden.models`: `DomainInfo` holds one domain's state, `Settings` the
  daily reset time, `IPVersion` tells IPv4 from IPv6.
- `sitewarden.eventlog.EventLog`: the line-per-message log file, usable as a
  context manager.
- `sitewarden.firewall`: `block_ip`, `unblock_ip` and the per-version
  functions add and remove drop rules; `resolve_ips` resolves a name.
- `sitewarden.domains`: `block_domain`, `unblock_domain`, `unblock_domains`,
  `update_domain_ips`, `setup_domains` and `try_block_domain`.
- `sitewarden.client`: `add_domain` and `notify_server`.
- `sitewarden.blocker`: `Blocker` is the daemon (`reload`, `handle_request`,
  `serve_ipc`, `sniff`, `stop`), and `parse_packet` returns the source address
  and IP version of an Ethernet frame.