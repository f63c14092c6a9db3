"""
netembot.core - Command interpretation and impairment state machine

- tokens: cursor-addressable token stream
- authorization: trusted operator set and gate
- dispatcher: command registry, session context and dispatch loop
- inventory: interface to IPv4 address snapshot
- vlan_selector: VLAN selection and IFB redirect resolution
- impairment: parameter parsing and netem application
"""
