"""
Hybrid Running Club back office.

Coaching core: students and payments, weekly workout prescription, the
exercise video library and the athlete portal, all held in memory by
`runclub.club_state.ClubState`.
"""

__version__ = '0.1.0'
