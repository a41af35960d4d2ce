"""
GOURMET FUN — Game Outcome & RTP Verification Engine

Turns uniform random draws into payouts for the Gourmet Fun mini-games and
verifies by Monte Carlo that each game converges to its intended RTP.

    rtp_engine.random_source   uniform [0, 1) sources (seeded, system, provably fair)
    rtp_engine.weighted        weighted tables and cyclic reel strips
    rtp_engine.combinatorics   exact C(n, k) for the mines multiplier
    rtp_engine.games           per-game outcome models
    rtp_engine.estimator       Monte Carlo RTP estimation
    rtp_engine.settlement      wager validation and balance settlement
"""

__version__ = "1.0.0"
