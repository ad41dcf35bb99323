from twofa.models.two_factor import TwoFactorAuth, TwoFactorLog
