import setuptools

setuptools.setup(
    name='micromc',
    version='0.1.0',
    description=(
        'Microcanonical Monte Carlo samplers with constrained momentum '
        'dynamics'
    ),
    long_description=(
        'Micromc is a Python package providing implementations of '
        'microcanonical Markov chain Monte Carlo methods, which draw '
        'correlated samples from a target density by simulating leapfrog '
        'dynamics with a momentum norm constraint and partial momentum '
        'refreshment in place of a Metropolis correction.'
    ),
    packages=['micromc'],
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Topic :: Scientific/Engineering',
        'Intended Audience :: Science/Research',
        'Intended Audience :: Developers'
    ],
    keywords='inference sampling MCMC microcanonical HMC MCLMC',
    license='MIT',
    install_requires=['numpy>=1.17', 'scipy>=1.2'],
    python_requires='>=3.6',
    extras_require={
        'autodiff': ['autograd>=1.3'],
        'test': ['pytest'],
    }
)
