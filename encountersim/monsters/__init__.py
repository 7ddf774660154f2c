"""
Monster abilities: multiattack, recharge abilities, legendary actions,
legendary resistance and frightful presence.
"""
