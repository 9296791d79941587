"""
Engine services.

- trust: trust score calculation and history
- referral: referral lifecycle, commissions, auto-share and stats
- notification: in-process change notifier
- wallet: wallet balance client
"""
